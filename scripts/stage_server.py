import os
import shutil

from errors import StagingError


def copy_tree(src, dst):
    """
    Copies src into dst depth-first, creating each directory before its
    contents. Permission bits are kept on POSIX, symlinks stay symlinks.
    """
    keep_modes = os.name == "posix"
    os.makedirs(dst, exist_ok=True)

    for dirpath, dirnames, filenames in os.walk(src):
        rel_dir = os.path.relpath(dirpath, src)
        target_dir = dst if rel_dir == os.curdir else os.path.join(dst, rel_dir)

        for name in sorted(dirnames):
            source = os.path.join(dirpath, name)
            target = os.path.join(target_dir, name)
            if os.path.islink(source):
                os.symlink(os.readlink(source), target)
            else:
                os.makedirs(target, exist_ok=True)
                if keep_modes:
                    shutil.copymode(source, target)
        dirnames.sort()

        for name in sorted(filenames):
            source = os.path.join(dirpath, name)
            target = os.path.join(target_dir, name)
            if os.path.islink(source):
                os.symlink(os.readlink(source), target)
                continue
            shutil.copyfile(source, target)
            if keep_modes:
                shutil.copymode(source, target)


def stage_for_server(roots, layout, base_root, server_id):
    """
    Replaces <data>/servers/<server_id> with a fresh copy of the base
    install and returns the path of the binary to patch.
    A failed run leaves whatever was copied so far; the next run wipes it.
    """
    server_dir = roots.server_dir(server_id)
    stage_root = layout.stage_root(server_dir, base_root)

    try:
        if os.path.lexists(server_dir):
            print(f"[*] Removing previous copy at {server_dir}")
            if os.path.isdir(server_dir) and not os.path.islink(server_dir):
                shutil.rmtree(server_dir)
            else:
                os.remove(server_dir)
        os.makedirs(server_dir)

        print(f"[*] Copying {base_root} -> {stage_root}")
        copy_tree(base_root, stage_root)
    except OSError as e:
        raise StagingError(f"Could not prepare {server_dir}: {e}") from e

    binary_path = layout.binary_path(stage_root)
    if not os.path.isfile(binary_path):
        raise StagingError(f"Game binary missing from staged copy: {binary_path}")
    return binary_path
