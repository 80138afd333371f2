"""
EMBEDSRC - decoder for obfuscated embed video-source payloads

Recovers the playable source list an embed player serves as a base64 blob
scrambled by three keyed layers (shift, column transposition, shuffle
substitution). The two keys come from the embed page (client key) and a
hosted key document (server key); see `embedsrc.keys`.
"""

from .main import *
from .errors import DecodeError, EmptyInputError, InvalidEncodingError, MalformedPayloadError
from .keys import KeyExtractor, KeyPattern, RemoteKeyFetcher
from .sources import EpisodeSources, SubtitleTrack, VideoSource, dump_sources, parse_sources
from .version import __version__

# ============================================================================
# DECODING (CipherText -> plaintext / source list)
# ============================================================================

def decode(ciphertext: str, client_key: str, server_key: str, *, double_rounding=None):
    """
    Decode an embed payload to its plaintext body.

    Args:
        ciphertext: Base64 blob from the embed API (`sources` field)
        client_key: Per-page key pulled from the embed markup
        server_key: Slow-changing key from the hosted key document
        double_rounding: Reproduce the browser's float rounding during key
            derivation (defaults to EMBEDSRC_DOUBLE_ROUNDING)

    Returns:
        The payload body with its 4-digit length prefix removed

    Raises:
        EmptyInputError, InvalidEncodingError, MalformedPayloadError
    """
    return embedsrc.decode(ciphertext, client_key, server_key, double_rounding=double_rounding)


def decode_sources(ciphertext: str, client_key: str, server_key: str, tracks=None, headers=None):
    """Decode and parse into `EpisodeSources`; caption tracks come from the API response."""
    return embedsrc.decode_sources(ciphertext, client_key, server_key, tracks, headers)


def decode_first(candidates, server_key: str, tracks=None):
    return embedsrc.decode_first(candidates, server_key, tracks)


def encode(payload: str, client_key: str, server_key: str, *, double_rounding=None):
    return embedsrc.encode(payload, client_key, server_key, double_rounding=double_rounding)


def encode_sources(episode, client_key: str, server_key: str, *, double_rounding=None):
    """Serialize `EpisodeSources` (sources and caption tracks) and encode it; inverse of `decode_sources`."""
    return embedsrc.encode_sources(episode, client_key, server_key, double_rounding=double_rounding)

# ============================================================================
# PRIMITIVES
# ============================================================================

def derive_master_key(server_key: str, client_key: str, *, double_rounding=None):
    return embedsrc.derive_master_key(server_key, client_key, double_rounding=double_rounding)
def hash_unbounded(text: str): return embedsrc.hash_unbounded(text)
def hash32(text: str): return embedsrc.hash32(text)
def shift_layer(text: str, layer_key: str): return embedsrc.shift_layer(text, layer_key)
def shift_layer_inverse(text: str, layer_key: str): return embedsrc.shift_layer_inverse(text, layer_key)
def transposition_layer(text: str, key: str): return embedsrc.transposition_layer(text, key)
def transposition_layer_inverse(text: str, key: str): return embedsrc.transposition_layer_inverse(text, key)
def substitution_layer(text: str, layer_key: str): return embedsrc.substitution_layer(text, layer_key)
def substitution_layer_inverse(text: str, layer_key: str): return embedsrc.substitution_layer_inverse(text, layer_key)
