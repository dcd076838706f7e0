import os
import subprocess

from errors import ExecutableMissing, NotInstalled, SigningError, SpawnError


def _run_step(run, cmd):
    """Runs one signing tool. Returns None on success, otherwise why it failed."""
    try:
        result = run(cmd, capture_output=True, text=True)
    except OSError as e:
        return f"{cmd[0]} could not be started: {e}"
    if result.returncode != 0:
        return f"{' '.join(cmd[:2])} exited with {result.returncode}: {(result.stderr or '').strip()}"
    return None


def resign_app(bundle_path, run=subprocess.run):
    """
    Patching breaks the bundle signature, and macOS refuses to start it.
    Clear quarantine, strip the old signature, sign ad-hoc.
    Only the final signing step is fatal.
    """
    bundle_path = str(bundle_path)
    print(f"[*] Re-signing {bundle_path}...")

    problems = []
    for cmd in (
        ["xattr", "-rd", "com.apple.quarantine", bundle_path],
        ["codesign", "--remove-signature", bundle_path],
    ):
        problem = _run_step(run, cmd)
        if problem:
            print(f"   [Warning] {problem}")
            problems.append(problem)

    problem = _run_step(run, ["codesign", "--force", "--deep", "--sign", "-", bundle_path])
    if problem:
        problems.append(problem)
        raise SigningError("Code re-signing failed: " + "; ".join(problems))

    print("[+] Bundle re-signed (ad-hoc)")


def _detach_kwargs():
    if os.name == "nt":
        return {"creationflags": subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def launch_game(roots, layout, server_id, popen=subprocess.Popen):
    """Starts the staged client for server_id without waiting for it."""
    server_dir = roots.server_dir(server_id)
    if not os.path.isdir(server_dir):
        raise NotInstalled(f"Server {server_id} is not installed")

    target = layout.launch_target(server_dir)
    if not os.path.exists(target):
        raise ExecutableMissing(f"Game not found at {target}")

    cmd, cwd = layout.launch_command(server_dir)
    print(f"[*] Launching {target}...")
    try:
        return popen(
            cmd,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            **_detach_kwargs(),
        )
    except OSError as e:
        raise SpawnError(f"Could not start {target}: {e}") from e
