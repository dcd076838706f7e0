import argparse
import base64
import os
import sys

from errors import BinaryIoError, PatcherError, PayloadTooLarge

# Database URL compiled into the client. Its length is the slot width.
ORIGINAL_URL = b"https://www.boomlings.com/database/"


def pad_endpoint(url):
    """
    Converts the target URL to the bytes written into the slot:
    UTF-8, right-padded with 00 up to len(ORIGINAL_URL).
    Anything longer would shift every offset after it, so it is refused.
    """
    new_bytes = url.encode("utf-8")
    if len(new_bytes) > len(ORIGINAL_URL):
        raise PayloadTooLarge(len(ORIGINAL_URL), len(new_bytes))
    return new_bytes.ljust(len(ORIGINAL_URL), b"\x00")


def find_all_positions(data, pattern):
    """Every offset where pattern starts, overlapping matches included."""
    positions = []
    if not pattern:
        return positions

    index = data.find(pattern)
    while index != -1:
        positions.append(index)
        index = data.find(pattern, index + 1)
    return positions


def replace_all_but_last(data, old_bytes, new_bytes):
    """
    Overwrites every occurrence of old_bytes in data except the last one.
    The last occurrence is the game's own reference and stays untouched.
    Returns how many occurrences were rewritten.
    """
    if len(old_bytes) != len(new_bytes):
        raise ValueError(f"Replacement must be {len(old_bytes)} bytes, got {len(new_bytes)}")

    positions = find_all_positions(data, old_bytes)
    if len(positions) < 2:
        return 0

    for index in positions[:-1]:
        data[index : index + len(new_bytes)] = new_bytes
    return len(positions) - 1


def patch_buffer(data, url):
    """Returns a patched copy of data. Never changes its length."""
    new_bytes = pad_endpoint(url)
    patched = bytearray(data)

    raw_count = replace_all_but_last(patched, ORIGINAL_URL, new_bytes)
    if raw_count:
        print(f"[*] Replaced {raw_count} raw occurrence(s).")
    else:
        print("[-] Raw URL: nothing to replace.")

    # Equal byte lengths give equal base64 lengths
    original_b64 = base64.b64encode(ORIGINAL_URL)
    new_b64 = base64.b64encode(new_bytes)
    b64_count = replace_all_but_last(patched, original_b64, new_b64)
    if b64_count:
        print(f"[*] Replaced {b64_count} base64 occurrence(s).")
    else:
        print("[-] Base64 URL: nothing to replace.")

    return patched


def patch_binary(file_path, url):
    # Validate first so an oversized URL never touches the file
    pad_endpoint(url)

    print(f"[*] Reading {file_path}...")
    try:
        with open(file_path, "rb") as f:
            data = f.read()
    except OSError as e:
        raise BinaryIoError(f"Could not read {file_path}: {e}") from e

    patched = patch_buffer(data, url)

    try:
        with open(file_path, "wb") as f:
            f.write(patched)
    except OSError as e:
        raise BinaryIoError(f"Could not write {file_path}: {e}") from e
    print(f"[*] Success. Saved to {file_path}")


def main():
    parser = argparse.ArgumentParser(description="Utility to point a Geometry Dash client at another server")
    parser.add_argument("file", help="Path to the executable file")
    parser.add_argument("url", help=f"new database URL, at most {len(ORIGINAL_URL)} bytes")

    args = parser.parse_args()

    if not os.path.exists(args.file):
        print(f"File not found: {args.file}")
        sys.exit(1)

    try:
        patch_binary(args.file, args.url)
    except PatcherError as e:
        print(f"[!] Error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
