#!/usr/bin/env python3
"""
Utility to initialize and verify the base Geometry Dash installation.
Downloads and unpacks the client archive if it is not already cached.
"""
import argparse
import os
import shutil
import stat
import sys
import threading
import warnings
import zipfile

import requests

from config import DOWNLOAD_TIMEOUT, TEMP_ARCHIVE, USER_AGENT, default_roots
from errors import AcquisitionError, CleanupWarning, PatcherError
from layout import detect_layout

# Check-then-download is not safe to run twice at once on the same cache
_ACQUIRE_LOCK = threading.Lock()


def download_archive(url, dest_path, http=requests):
    """Streams url into dest_path."""
    print(f"[*] Downloading {url}...")
    headers = {"User-Agent": USER_AGENT}
    total_dl = 0
    try:
        with http.get(url, headers=headers, stream=True, timeout=DOWNLOAD_TIMEOUT) as response:
            response.raise_for_status()
            with open(dest_path, "wb") as f:
                for chunk in response.iter_content(chunk_size=1024 * 1024):
                    if chunk:
                        f.write(chunk)
                        total_dl += len(chunk)
    except requests.exceptions.RequestException as e:
        raise AcquisitionError(f"Download of {url} failed: {e}") from e
    except OSError as e:
        raise AcquisitionError(f"Could not write {dest_path}: {e}") from e

    print(f"[+] Downloaded {total_dl / (1024 * 1024):.2f} MB")


def _inside(root, path):
    return os.path.commonpath([root, path]) == root


def _target_path(dest_dir, name):
    """
    Where an entry lands. Symlinks unpacked by earlier entries are followed,
    so an entry cannot be written outside dest_dir through one of them.
    """
    root = os.path.abspath(dest_dir)
    target = os.path.abspath(os.path.join(root, name))
    real_parent = os.path.realpath(os.path.dirname(target))
    if not _inside(root, target) or not _inside(os.path.realpath(root), real_parent):
        raise AcquisitionError(f"Archive entry escapes the cache directory: {name}")
    return target


def _check_link(dest_dir, out_path, link_target, name):
    resolved = os.path.realpath(os.path.join(os.path.dirname(out_path), link_target))
    if not _inside(os.path.realpath(dest_dir), resolved):
        raise AcquisitionError(f"Archive symlink points outside the cache directory: {name} -> {link_target}")


def extract_archive(archive_path, dest_dir):
    """
    Unpacks every entry of the zip into dest_dir. On POSIX the Unix mode
    stored in the archive is restored, symlinks included.
    """
    keep_modes = os.name == "posix"
    try:
        with zipfile.ZipFile(archive_path) as zf:
            for info in zf.infolist():
                out_path = _target_path(dest_dir, info.filename)
                mode = info.external_attr >> 16

                if info.is_dir():
                    os.makedirs(out_path, exist_ok=True)
                    continue

                os.makedirs(os.path.dirname(out_path), exist_ok=True)
                if os.path.lexists(out_path) and (os.path.islink(out_path) or not os.path.isdir(out_path)):
                    os.remove(out_path)

                if keep_modes and stat.S_ISLNK(mode):
                    link_target = zf.read(info).decode("utf-8")
                    _check_link(dest_dir, out_path, link_target, info.filename)
                    os.symlink(link_target, out_path)
                    continue

                with zf.open(info) as src, open(out_path, "wb") as dst:
                    shutil.copyfileobj(src, dst)

                if keep_modes and mode:
                    os.chmod(out_path, stat.S_IMODE(mode))
    except zipfile.BadZipFile as e:
        raise AcquisitionError(f"Archive {archive_path} is corrupt: {e}") from e
    except OSError as e:
        raise AcquisitionError(f"Extracting {archive_path} failed: {e}") from e


def _remove_archive(archive_path):
    if not os.path.exists(archive_path):
        return
    try:
        os.remove(archive_path)
    except OSError as e:
        print(f"[!] Warning: could not remove {archive_path}: {e}")
        warnings.warn(f"Could not remove temporary archive {archive_path}: {e}", CleanupWarning)


def _remove_tree(path):
    if not os.path.lexists(path):
        return
    try:
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
    except OSError as e:
        print(f"[!] Warning: could not remove {path}: {e}")
        warnings.warn(f"Could not remove unfinished extraction {path}: {e}", CleanupWarning)


def _unpack(layout, archive_path, partial):
    extract_archive(archive_path, partial)
    try:
        layout.after_extract(partial)
    except OSError as e:
        raise AcquisitionError(f"Could not mark the game executable as runnable: {e}") from e
    if not layout.find_base(partial):
        raise AcquisitionError("Game executable not found in the archive after extraction")


def _find_or_download(roots, layout, http):
    gd_cache = roots.game_cache

    base_path = layout.find_base(gd_cache)
    if base_path:
        print(f"[*] Base installation already exists at {base_path}")
        return base_path, layout.is_bundle

    print("[*] Base installation not found. Downloading...")
    # Unpacked next to the cache and moved in only when complete,
    # so a failed run never leaves something that looks installed
    partial = gd_cache + ".partial"
    archive_path = os.path.join(roots.cache_root, TEMP_ARCHIVE)
    try:
        os.makedirs(roots.cache_root, exist_ok=True)
        _remove_tree(partial)
        os.makedirs(partial)
    except OSError as e:
        raise AcquisitionError(f"Cache directory {roots.cache_root} is not accessible: {e}") from e

    try:
        download_archive(layout.download_url, archive_path, http=http)
        print(f"[*] Extracting to {partial}...")
        _unpack(layout, archive_path, partial)
    except BaseException:
        _remove_tree(partial)
        raise
    finally:
        _remove_archive(archive_path)

    try:
        if os.path.lexists(gd_cache):
            shutil.rmtree(gd_cache)
        os.replace(partial, gd_cache)
    except OSError as e:
        raise AcquisitionError(f"Could not move the installation into {gd_cache}: {e}") from e

    base_path = layout.find_base(gd_cache)
    print(f"[+] Base installation ready at {base_path}")
    return base_path, layout.is_bundle


def ensure_base_installation(roots, layout, http=requests):
    """
    Returns (root_path, is_bundle) of the pristine install, downloading it
    on first use. A warm cache makes no network request.
    """
    with _ACQUIRE_LOCK:
        return _find_or_download(roots, layout, http)


def main():
    parser = argparse.ArgumentParser(description="Download the base Geometry Dash installation")
    parser.add_argument("--data-dir", help="Application data directory")
    parser.add_argument("--cache-dir", help="Application cache directory")
    args = parser.parse_args()

    roots = default_roots(args.data_dir, args.cache_dir)
    try:
        base_path, _ = ensure_base_installation(roots, detect_layout())
    except PatcherError as e:
        print(f"[!] {e}")
        sys.exit(1)

    print(f"[+] Geometry Dash is ready at {base_path}")


if __name__ == "__main__":
    main()
