"""
Confirmation prompts for destructive App Store Connect operations.

Deleting beta groups or testers cannot be undone, so the CLI asks the user
to type a short confirmation code first. Without a TTY (scripts, agents) the
operation is refused unless the command was given --yes.
"""

import sys
import secrets


def generate_confirmation_code(prefix: str = 'DELETE') -> str:
    """
    Generate a short random code like 'DELETE-7X3K'.

    Uses only unambiguous characters (no 0/O, 1/I/L confusion).
    """
    alphabet = 'ABCDEFGHJKMNPQRSTUVWXYZ23456789'
    suffix = ''.join(secrets.choice(alphabet) for _ in range(4))
    return f"{prefix}-{suffix}"


def confirm_destructive(action: str, target: str, stdin=None) -> bool:
    """
    Ask the user to type a confirmation code before a destructive call.

    Args:
        action: What will happen, e.g. 'Delete beta group'
        target: Resource identifier shown to the user
        stdin: Input stream (default: sys.stdin)

    Returns:
        True only if the user typed the exact code
    """
    stdin = stdin or sys.stdin
    if not stdin.isatty():
        print(f"{action} {target}: refusing without a terminal; pass --yes to confirm.",
              file=sys.stderr)
        return False

    code = generate_confirmation_code()

    print(f"\n{'='*60}", file=sys.stderr)
    print(f"  {action.upper()}", file=sys.stderr)
    print(f"{'='*60}", file=sys.stderr)
    print(f"\nTarget: {target}", file=sys.stderr)
    print("This cannot be undone.", file=sys.stderr)
    print(f"\nTo proceed, type exactly: {code}", file=sys.stderr)
    print("(or press Enter to cancel)\n", file=sys.stderr)

    try:
        print("Confirmation: ", end='', file=sys.stderr, flush=True)
        response = stdin.readline().strip()
    except KeyboardInterrupt:
        print("\nCancelled.", file=sys.stderr)
        return False

    if response == code:
        return True

    if response:
        print(f"\nConfirmation failed. Expected '{code}', got '{response}'",
              file=sys.stderr)
    else:
        print("\nCancelled.", file=sys.stderr)
    return False
