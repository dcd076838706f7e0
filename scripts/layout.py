"""
Platform layouts of the game install.

macOS ships an .app bundle that must be re-signed after patching,
Windows ships a flat directory around GeometryDash.exe. The layout is
picked once at startup and everything platform-specific goes through it.
"""
import os
import platform

from config import MAC_GD_URL, WIN_GD_URL


class BundleLayout:
    is_bundle = True
    needs_signing = True
    download_url = MAC_GD_URL
    bundle_name = "GeometryDash.app"
    executable = os.path.join("Contents", "MacOS", "Geometry Dash")

    def find_base(self, game_cache):
        bundle = os.path.join(game_cache, self.bundle_name)
        if os.path.exists(bundle):
            return bundle
        return None

    def after_extract(self, game_cache):
        binary = os.path.join(game_cache, self.bundle_name, self.executable)
        if os.path.exists(binary):
            os.chmod(binary, 0o755)

    def stage_root(self, server_dir, base_root):
        # Keep the bundle itself, not only its contents
        return os.path.join(server_dir, os.path.basename(os.path.normpath(base_root)))

    def binary_path(self, stage_root):
        return os.path.join(stage_root, self.executable)

    def launch_target(self, server_dir):
        return os.path.join(server_dir, self.bundle_name)

    def launch_command(self, server_dir):
        return ["open", self.launch_target(server_dir)], None


class FlatBinaryLayout:
    is_bundle = False
    needs_signing = False
    download_url = WIN_GD_URL
    executable = "GeometryDash.exe"
    nested_dir = "GeometryDash"

    def find_base(self, game_cache):
        """
        Archives don't agree on where the executable lives: try the cache
        root, then one nested folder, then anywhere below.
        """
        if not os.path.isdir(game_cache):
            return None

        if os.path.isfile(os.path.join(game_cache, self.executable)):
            return game_cache

        nested = os.path.join(game_cache, self.nested_dir)
        if os.path.isfile(os.path.join(nested, self.executable)):
            return nested

        wanted = self.executable.lower()
        for dirpath, _dirnames, filenames in os.walk(game_cache):
            for filename in filenames:
                if filename.lower() == wanted:
                    return dirpath
        return None

    def after_extract(self, game_cache):
        pass

    def stage_root(self, server_dir, base_root):
        return server_dir

    def binary_path(self, stage_root):
        exact = os.path.join(stage_root, self.executable)
        if os.path.isfile(exact):
            return exact
        wanted = self.executable.lower()
        if os.path.isdir(stage_root):
            for entry in sorted(os.listdir(stage_root)):
                if entry.lower() == wanted:
                    return os.path.join(stage_root, entry)
        return exact

    def launch_target(self, server_dir):
        return self.binary_path(server_dir)

    def launch_command(self, server_dir):
        # The game finds its resources relative to the working directory
        return [self.launch_target(server_dir)], server_dir


BUNDLE = BundleLayout()
FLAT_BINARY = FlatBinaryLayout()


def detect_layout(system=None):
    system = system or platform.system()
    if system == "Darwin":
        return BUNDLE
    return FLAT_BINARY
