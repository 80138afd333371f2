#!/usr/bin/env python3
"""Quick decode benchmark - direct timing only"""
import json
import time


CLIENT_KEY = "Gx7Qp2LmN9vR4sT8wY1zK3bH6jD0fA5c"
SERVER_KEY = "e5cea96a7b3a8aa9c3b1f4f0c1d2e3f4a5b6c7d8e9f00112233445566778899a"
PAYLOAD = json.dumps([{"file": f"https://cdn{i}.example/hls/master.m3u8", "type": "hls"} for i in range(40)])


def bench(iterations: int = 200):
    import embedsrc

    cipher = embedsrc.encode(PAYLOAD, CLIENT_KEY, SERVER_KEY)
    start = time.perf_counter()
    for _ in range(iterations):
        result = embedsrc.decode(cipher, CLIENT_KEY, SERVER_KEY)
    elapsed = time.perf_counter() - start
    return elapsed, cipher, result


def main():
    iterations = 200
    print(f"Benchmarking decode ({iterations} iterations)...")
    print(f"Payload size: {len(PAYLOAD)} chars\n")

    elapsed, cipher, result = bench(iterations)
    print(f"  Ciphertext size: {len(cipher)} chars")
    print(f"  Time: {elapsed:.3f}s ({elapsed / iterations * 1000:.2f} ms/op)")
    print(f"  Output sample: {result[:60]}...")
    assert result == PAYLOAD, "decode mismatch"

    print("\n✅ Decode benchmark complete")


if __name__ == '__main__':
    main()
