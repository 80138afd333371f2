# EMBEDSRC DECODING ENGINE ->

import os as _os_module
import sys as _sys_module
import warnings as _warnings_module

from .errors import DecodeError, EmptyInputError, InvalidEncodingError, MalformedPayloadError
from .sources import EpisodeSources, dump_sources, parse_sources


class embedsrc:
    import base64
    import binascii
    import math
    import typing
    try:
        import numpy as np
    except Exception:  # pragma: no cover - optional dependency
        np = None
    try:
        import colorama
        colorama.init()
    except ImportError:
        colorama = None

    @staticmethod
    def _env_int(name: str) -> "embedsrc.typing.Optional[int]":
        value = _os_module.getenv(name)
        if not value:
            return None
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            return None
        if parsed <= 0:
            return None
        return parsed

    @staticmethod
    def _env_flag(name: str) -> bool:
        raw = _os_module.getenv(name)
        if not raw:
            return False
        return raw.strip().lower() in ("1", "true", "yes", "on")

    ENGINE_VERSION = "1.0.0"
    ALPHABET: typing.ClassVar[typing.Tuple[str, ...]] = tuple(chr(c) for c in range(0x20, 0x7F))
    ALPHABET_SIZE = len(ALPHABET)
    _ALPHABET_INDEX: typing.ClassVar[typing.Dict[str, int]] = {ch: i for i, ch in enumerate(ALPHABET)}
    PAD_CHAR = " "
    LAYER_COUNT = 3
    LENGTH_PREFIX_DIGITS = 4
    MAX_PAYLOAD_LEN = 10 ** LENGTH_PREFIX_DIGITS - 1
    # key derivation
    KEYGEN_HASH_MUL = 158  # h*31 + (h << 7) - h
    KEYGEN_HASH_MOD = (1 << 63) - 1
    KEYGEN_XOR = 247
    KEYGEN_SHIFT = 5
    KEYGEN_MIN_LEN = 96
    KEYGEN_LEN_SPREAD = 33
    # per-layer seeding
    LAYER_HASH_MUL = 31
    LAYER_HASH_MASK = 0xFFFFFFFF
    LCG_MUL = 1103515245
    LCG_INC = 12345
    LCG_MASK = 0x7FFFFFFF
    TRANSPOSE_FAST_MIN = 4 * 1024
    _TRANSPOSE_FAST_MIN_ENV = _env_int("EMBEDSRC_TRANSPOSE_FAST_MIN")
    if _TRANSPOSE_FAST_MIN_ENV is not None:
        TRANSPOSE_FAST_MIN = _TRANSPOSE_FAST_MIN_ENV
    DOUBLE_ROUNDING = _env_flag("EMBEDSRC_DOUBLE_ROUNDING")
    DEBUG = _env_flag("EMBEDSRC_DEBUG")
    _SILENT_MODE: typing.ClassVar[bool] = False

    @staticmethod
    def _trace(message: str) -> None:
        if not embedsrc.DEBUG or embedsrc._SILENT_MODE:
            return
        if embedsrc.colorama is not None:
            message = f"{embedsrc.colorama.Fore.CYAN}{message}{embedsrc.colorama.Fore.RESET}"
        try:
            print(f"[embedsrc] {message}", file=_sys_module.stderr)
        except Exception:
            pass

    @staticmethod
    def _warn(message: str) -> None:
        _warnings_module.warn(message, RuntimeWarning, stacklevel=3)

    # ------------------------------------------------------------------ hashes

    @staticmethod
    def hash_unbounded(text: str) -> int:
        """Polynomial hash with no truncation, reduced mod 2**63 - 1 at the end."""
        h = 0
        mul = embedsrc.KEYGEN_HASH_MUL
        for ch in text:
            h = h * mul + ord(ch)
        return abs(h) % embedsrc.KEYGEN_HASH_MOD

    @staticmethod
    def hash32(text: str) -> int:
        h = 0
        mul = embedsrc.LAYER_HASH_MUL
        mask = embedsrc.LAYER_HASH_MASK
        for ch in text:
            h = (h * mul + ord(ch)) & mask
        return h

    class SeededLCG:
        """
        Linear-congruential generator. Output depends on call order, so every
        consumer draws in a fixed order and owns its own instance.
        """

        __slots__ = ("state",)

        def __init__(self, seed: int) -> None:
            self.state = seed

        def next(self, bound: int) -> int:
            self.state = (self.state * embedsrc.LCG_MUL + embedsrc.LCG_INC) & embedsrc.LCG_MASK
            return self.state % bound

    # ---------------------------------------------------------- key derivation

    @staticmethod
    def derive_master_key(
        server_key: str,
        client_key: str,
        *,
        double_rounding: "embedsrc.typing.Optional[bool]" = None,
    ) -> str:
        if double_rounding is None:
            double_rounding = embedsrc.DOUBLE_ROUNDING
        combined = server_key + client_key
        l_hash = embedsrc.hash_unbounded(combined)
        if double_rounding:
            l_hash = int(float(l_hash))
        xor = embedsrc.KEYGEN_XOR
        xored = "".join(chr(ord(ch) ^ xor) for ch in combined)
        if xored:
            pivot = (l_hash % len(xored)) + embedsrc.KEYGEN_SHIFT
            # pivot >= len leaves the string as is
            xored = xored[pivot:] + xored[:pivot]
        leaf = client_key[::-1]
        parts = []
        for i in range(max(len(xored), len(leaf))):
            if i < len(xored):
                parts.append(xored[i])
            if i < len(leaf):
                parts.append(leaf[i])
        interleaved = "".join(parts)[:embedsrc.KEYGEN_MIN_LEN + (l_hash % embedsrc.KEYGEN_LEN_SPREAD)]
        size = embedsrc.ALPHABET_SIZE
        return "".join(chr((ord(ch) % size) + 0x20) for ch in interleaved)

    @staticmethod
    def layer_key(master_key: str, iteration: int) -> str:
        return f"{master_key}{iteration}"

    # ------------------------------------------------------------------ layers

    @staticmethod
    def shift_layer(text: str, layer_key: str) -> str:
        rng = embedsrc.SeededLCG(embedsrc.hash32(layer_key))
        index = embedsrc._ALPHABET_INDEX
        alphabet = embedsrc.ALPHABET
        size = embedsrc.ALPHABET_SIZE
        out = []
        for ch in text:
            pos = index.get(ch)
            if pos is None:
                out.append(ch)
                continue
            out.append(alphabet[(pos - rng.next(size) + size) % size])
        return "".join(out)

    @staticmethod
    def shift_layer_inverse(text: str, layer_key: str) -> str:
        rng = embedsrc.SeededLCG(embedsrc.hash32(layer_key))
        index = embedsrc._ALPHABET_INDEX
        alphabet = embedsrc.ALPHABET
        size = embedsrc.ALPHABET_SIZE
        out = []
        for ch in text:
            pos = index.get(ch)
            if pos is None:
                out.append(ch)
                continue
            out.append(alphabet[(pos + rng.next(size)) % size])
        return "".join(out)

    @staticmethod
    def _column_order(key: str) -> "embedsrc.typing.List[int]":
        # sorted() is stable, so equal key characters keep their column order
        return [idx for _, idx in sorted(((ord(ch), idx) for idx, ch in enumerate(key)), key=lambda p: p[0])]

    @staticmethod
    def _fast_transpose(text: str, order: "embedsrc.typing.List[int]", rows: int, columns: int) -> str:
        """NumPy grid fill on UTF-32 code units; identical output to the loop path."""
        np = embedsrc.np
        padded = text + embedsrc.PAD_CHAR * (rows * columns - len(text))
        src = np.frombuffer(padded.encode("utf-32-le"), dtype="<u4")
        grid = np.empty((rows, columns), dtype="<u4")
        grid[:, np.asarray(order, dtype=np.intp)] = src.reshape(columns, rows).T
        return grid.tobytes().decode("utf-32-le")

    @staticmethod
    def transposition_layer(text: str, key: str) -> str:
        columns = len(key)
        if columns == 0:
            raise ValueError("Transposition key must not be empty")
        rows = embedsrc.math.ceil(len(text) / columns)
        if rows == 0:
            return ""
        order = embedsrc._column_order(key)
        if embedsrc.np is not None and len(text) >= embedsrc.TRANSPOSE_FAST_MIN:
            return embedsrc._fast_transpose(text, order, rows, columns)
        grid = [[embedsrc.PAD_CHAR] * columns for _ in range(rows)]
        src_index = 0
        total = len(text)
        for column in order:
            for row in range(rows):
                if src_index >= total:
                    break
                grid[row][column] = text[src_index]
                src_index += 1
        return "".join("".join(row) for row in grid)

    @staticmethod
    def transposition_layer_inverse(text: str, key: str) -> str:
        """Exact inverse of `transposition_layer` when len(text) is a multiple of len(key)."""
        columns = len(key)
        if columns == 0:
            raise ValueError("Transposition key must not be empty")
        if len(text) % columns:
            raise ValueError("Inverse transposition needs a whole number of rows")
        rows = len(text) // columns
        return "".join(
            text[row * columns + column]
            for column in embedsrc._column_order(key)
            for row in range(rows)
        )

    @staticmethod
    def shuffled_alphabet(layer_key: str) -> "embedsrc.typing.List[str]":
        rng = embedsrc.SeededLCG(embedsrc.hash32(layer_key))
        shuffled = list(embedsrc.ALPHABET)
        for i in range(len(shuffled) - 1, 0, -1):
            j = rng.next(i + 1)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    @staticmethod
    def substitution_layer(text: str, layer_key: str) -> str:
        shuffled = embedsrc.shuffled_alphabet(layer_key)
        table = {ord(src): dst for src, dst in zip(shuffled, embedsrc.ALPHABET)}
        return text.translate(table)

    @staticmethod
    def substitution_layer_inverse(text: str, layer_key: str) -> str:
        shuffled = embedsrc.shuffled_alphabet(layer_key)
        table = {ord(src): dst for src, dst in zip(embedsrc.ALPHABET, shuffled)}
        return text.translate(table)

    # ------------------------------------------------------------ orchestration

    @staticmethod
    def _require_keys(client_key: str, server_key: str) -> None:
        if not client_key:
            raise EmptyInputError("Client key is empty")
        if not server_key:
            raise EmptyInputError("Server key is empty")

    @staticmethod
    def _b64_to_text(ciphertext: str) -> str:
        try:
            raw = embedsrc.base64.b64decode(ciphertext.strip(), validate=True)
        except (embedsrc.binascii.Error, ValueError) as exc:
            raise InvalidEncodingError("Ciphertext is not valid base64") from exc
        # one char per byte, matching atob()
        return raw.decode("latin-1")

    @staticmethod
    def _strip_length_prefix(text: str) -> str:
        digits = embedsrc.LENGTH_PREFIX_DIGITS
        prefix = text[:digits]
        if len(prefix) != digits or not (prefix.isascii() and prefix.isdigit()):
            raise MalformedPayloadError("Decoded payload has no length prefix")
        data_len = int(prefix)
        if digits + data_len > len(text):
            raise MalformedPayloadError(
                f"Decoded payload length {data_len} exceeds available {len(text) - digits}"
            )
        return text[digits:digits + data_len]

    @staticmethod
    def decode(
        ciphertext: str,
        client_key: str,
        server_key: str,
        *,
        double_rounding: "embedsrc.typing.Optional[bool]" = None,
    ) -> str:
        if not ciphertext:
            raise EmptyInputError("Ciphertext is empty")
        embedsrc._require_keys(client_key, server_key)
        master_key = embedsrc.derive_master_key(server_key, client_key, double_rounding=double_rounding)
        text = embedsrc._b64_to_text(ciphertext)
        if not text:
            raise EmptyInputError("Ciphertext decodes to nothing")
        for iteration in range(embedsrc.LAYER_COUNT, 0, -1):
            layer_key = embedsrc.layer_key(master_key, iteration)
            text = embedsrc.shift_layer(text, layer_key)
            text = embedsrc.transposition_layer(text, layer_key)
            text = embedsrc.substitution_layer(text, layer_key)
            embedsrc._trace(f"layer {iteration}: {len(text)} chars")
        return embedsrc._strip_length_prefix(text)

    @staticmethod
    def encode(
        payload: str,
        client_key: str,
        server_key: str,
        *,
        double_rounding: "embedsrc.typing.Optional[bool]" = None,
    ) -> str:
        """Companion encoder: `decode(encode(p, c, s), c, s) == p`."""
        embedsrc._require_keys(client_key, server_key)
        if len(payload) > embedsrc.MAX_PAYLOAD_LEN:
            raise ValueError(f"Payload longer than {embedsrc.MAX_PAYLOAD_LEN} characters")
        master_key = embedsrc.derive_master_key(server_key, client_key, double_rounding=double_rounding)
        text = f"{len(payload):0{embedsrc.LENGTH_PREFIX_DIGITS}d}{payload}"
        for iteration in range(1, embedsrc.LAYER_COUNT + 1):
            layer_key = embedsrc.layer_key(master_key, iteration)
            remainder = len(text) % len(layer_key)
            if remainder:
                text += embedsrc.PAD_CHAR * (len(layer_key) - remainder)
            text = embedsrc.substitution_layer_inverse(text, layer_key)
            text = embedsrc.transposition_layer_inverse(text, layer_key)
            text = embedsrc.shift_layer_inverse(text, layer_key)
        try:
            raw = text.encode("latin-1")
        except UnicodeEncodeError as exc:
            raise ValueError("Payload contains characters outside latin-1") from exc
        return embedsrc.base64.b64encode(raw).decode("ascii")

    @staticmethod
    def decode_sources(
        ciphertext: str,
        client_key: str,
        server_key: str,
        tracks=None,
        headers=None,
    ) -> EpisodeSources:
        return parse_sources(embedsrc.decode(ciphertext, client_key, server_key), tracks, headers)

    @staticmethod
    def encode_sources(
        episode: EpisodeSources,
        client_key: str,
        server_key: str,
        *,
        double_rounding: "embedsrc.typing.Optional[bool]" = None,
    ) -> str:
        return embedsrc.encode(dump_sources(episode), client_key, server_key, double_rounding=double_rounding)

    @staticmethod
    def decode_first(candidates, server_key: str, tracks=None) -> "embedsrc.typing.Optional[EpisodeSources]":
        """
        Decode `(ciphertext, client_key)` candidates in order and return the
        first one that yields a source list. Decoder errors are warned about
        and skipped; anything else propagates.
        """
        for position, (ciphertext, client_key) in enumerate(candidates):
            try:
                return embedsrc.decode_sources(ciphertext, client_key, server_key, tracks)
            except DecodeError as exc:
                embedsrc._warn(f"Candidate {position} skipped: {type(exc).__name__}: {exc}")
        return None
