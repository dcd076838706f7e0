import argparse
import sys

import requests

from config import API_TIMEOUT, SERVER_API_URL, USER_AGENT
from errors import ServerLookupError


def log(message):
    print(message, file=sys.stderr)


def fetch_server_info(server_id, http=requests, timeout=API_TIMEOUT):
    """
    Asks the GDPS directory about a server. Returns the decoded payload:
    {"success": bool, "server": {"srvid", "srvName", "description", "icon",
    "userCount", "levelCount", "textAlign", "backgroundImage"}}
    """
    url = SERVER_API_URL.format(server_id)
    headers = {"User-Agent": USER_AGENT}
    try:
        r = http.get(url, headers=headers, timeout=timeout)
        r.raise_for_status()
        info = r.json()
    except requests.exceptions.RequestException as e:
        raise ServerLookupError(f"Lookup of server {server_id} failed: {e}") from e
    except ValueError as e:
        raise ServerLookupError(f"Server directory returned invalid JSON for {server_id}") from e

    if not isinstance(info, dict):
        raise ServerLookupError(f"Unexpected answer for server {server_id}")
    return info


def describe_server(info):
    server = info.get("server") or {}
    name = server.get("srvName") or server.get("srvid") or "?"
    description = server.get("description") or "No description"
    users = server.get("userCount", 0)
    levels = server.get("levelCount", 0)
    return f"{name} - {description} ({users} users, {levels} levels)"


def main():
    parser = argparse.ArgumentParser(description="Look up a GDPS server in the directory")
    parser.add_argument("server_id", help="GDPS server ID, e.g. 7650")
    args = parser.parse_args()

    log(f"Checking server {args.server_id}...")
    try:
        info = fetch_server_info(args.server_id)
    except ServerLookupError as e:
        log(str(e))
        print("FOUND=false")
        sys.exit(1)

    if not info.get("success"):
        log(f"Server {args.server_id} is not listed")
        print("FOUND=false")
        return

    print(describe_server(info))
    print("FOUND=true")


if __name__ == "__main__":
    main()
