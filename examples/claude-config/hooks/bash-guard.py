#!/usr/bin/env python3
"""PreToolUse hook: block obviously destructive shell commands.

Reads the tool-use event as JSON on stdin. Exit code 2 blocks the call
and shows stderr to the assistant.
"""

import json
import sys

BLOCKED = ("rm -rf /", "mkfs", ":(){ :|:& };:")


def main() -> int:
    event = json.load(sys.stdin)
    command = event.get("tool_input", {}).get("command", "")
    for pattern in BLOCKED:
        if pattern in command:
            print(f"Blocked: command matches '{pattern}'", file=sys.stderr)
            return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
