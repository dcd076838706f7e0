import sys
import time

from auto_patch import GameManager
from check_server import describe_server, fetch_server_info
from config import LABEL_TIMEOUT
from errors import PatcherError


def server_label(manager, server_id):
    """Falls back to the bare ID when the directory does not answer."""
    try:
        info = fetch_server_info(server_id, http=manager.http, timeout=LABEL_TIMEOUT)
    except PatcherError:
        return server_id
    if not info.get("success"):
        return server_id
    return f"{server_id}: {describe_server(info)}"


def server_labels(manager, servers):
    # Looked up on the worker threads, side by side
    futures = [manager.submit(server_label, manager, server_id) for server_id in servers]
    return [future.result() for future in futures]


def wait_for(future, message, interval=0.5):
    """Prints progress dots while the worker thread is busy."""
    print(message, end="", flush=True)
    while not future.done():
        print(".", end="", flush=True)
        time.sleep(interval)
    print()
    return future.result()


def add_server(manager):
    server_id = input("Enter server ID (e.g. 7650): ").strip()
    if not server_id:
        print("Invalid ID.")
        return
    try:
        wait_for(manager.submit(manager.patch, server_id), "Patching game")
        print("Done!")
    except PatcherError as e:
        print(f"Patch failed: {e}")


def launch_server(manager, servers):
    if not servers:
        print("No servers installed yet.")
        return
    choice = input("Server number: ").strip()
    if not choice.isdigit() or not 1 <= int(choice) <= len(servers):
        print("Invalid choice.")
        return
    try:
        wait_for(manager.submit(manager.run, servers[int(choice) - 1]), "Launching")
    except PatcherError as e:
        print(f"Error launching game: {e}")


def main():
    manager = GameManager()

    try:
        while True:
            servers = manager.list_profiles()
            print("\n=== GDPS Launcher ===")
            if servers:
                for number, label in enumerate(server_labels(manager, servers), 1):
                    print(f"  [{number}] {label}")
            else:
                print("  (no servers installed)")
            print("1. Add Server")
            print("2. Launch Game")
            print("3. Exit")

            try:
                choice = input("Enter choice: ").strip()
            except EOFError:
                break

            if choice == "1":
                add_server(manager)
            elif choice == "2":
                launch_server(manager, servers)
            elif choice == "3":
                break
            else:
                print("Invalid choice.")
    except KeyboardInterrupt:
        pass
    finally:
        print("\nExiting...")
        manager.shutdown()
        sys.exit(0)


if __name__ == "__main__":
    main()
