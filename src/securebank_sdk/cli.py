"""
Command-line interface for SecureBank Python SDK
Provides envelope key generation, encryption and path classification
"""

import argparse
import sys
import json
import string
import secrets
from typing import Optional

from .version import __version__
from .envelope import (
    EnvelopeCodec,
    Direction,
    DEFAULT_POLICY,
    KEY_LENGTH,
    REPLAY_WINDOW_MS,
    generate_key,
    load_key,
)
from .exceptions import SecureBankSDKError

KEY_ALPHABET = string.ascii_letters + string.digits


def create_parser() -> argparse.ArgumentParser:
    """Create the main argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog='securebank-envelope',
        description='SecureBank payload envelope tools'
    )

    parser.add_argument(
        '--version',
        action='version',
        version=f'SecureBank Python SDK {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    keygen_parser = subparsers.add_parser('keygen', help='Generate a 32-byte envelope key')
    keygen_parser.add_argument(
        '--format',
        choices=['hex', 'utf8'],
        default='hex',
        help='hex: 64 hex characters; utf8: 32 alphanumeric characters (default: hex)'
    )

    encrypt_parser = subparsers.add_parser('encrypt', help='Seal a JSON value into an envelope')
    encrypt_parser.add_argument('--key', required=True, help='Envelope key (64 hex or 32 characters)')
    encrypt_parser.add_argument('--data', help='JSON value to seal (read from stdin if omitted)')

    decrypt_parser = subparsers.add_parser('decrypt', help='Open an envelope')
    decrypt_parser.add_argument('--key', required=True, help='Envelope key (64 hex or 32 characters)')
    decrypt_parser.add_argument('--data', help='Envelope JSON (read from stdin if omitted)')
    decrypt_parser.add_argument(
        '--replay-window-ms',
        type=int,
        default=REPLAY_WINDOW_MS,
        help=f'Maximum envelope age in milliseconds (default: {REPLAY_WINDOW_MS})'
    )

    classify_parser = subparsers.add_parser('classify', help='Check whether a path carries envelopes')
    classify_parser.add_argument('path', help='API path, e.g. /api/accounts/42')
    classify_parser.add_argument(
        '--direction',
        choices=[d.value for d in Direction],
        default=Direction.OUTBOUND.value,
        help='Payload direction (default: outbound)'
    )

    return parser


def _read_input(data: Optional[str]) -> str:
    return data if data is not None else sys.stdin.read()


def handle_keygen_command(args) -> int:
    """Handle key generation command."""
    if args.format == 'utf8':
        print(''.join(secrets.choice(KEY_ALPHABET) for _ in range(KEY_LENGTH)))
    else:
        print(generate_key().hex())
    return 0


def handle_encrypt_command(args) -> int:
    """Handle envelope encryption command."""
    try:
        value = json.loads(_read_input(args.data))
    except ValueError as e:
        print(f"Error: input is not valid JSON: {e}", file=sys.stderr)
        return 1

    codec = EnvelopeCodec(load_key(args.key))
    print(json.dumps(codec.encrypt(value).to_dict()))
    return 0


def handle_decrypt_command(args) -> int:
    """Handle envelope decryption command."""
    try:
        envelope = json.loads(_read_input(args.data))
    except ValueError as e:
        print(f"Error: envelope is not valid JSON: {e}", file=sys.stderr)
        return 1

    codec = EnvelopeCodec(load_key(args.key), replay_window_ms=args.replay_window_ms)
    print(json.dumps(codec.decrypt(envelope), ensure_ascii=False))
    return 0


def handle_classify_command(args) -> int:
    """Handle path classification command."""
    direction = Direction(args.direction)
    sensitive = DEFAULT_POLICY.is_sensitive(args.path, direction)
    print(f"{args.path} ({direction.value}): {'sensitive' if sensitive else 'not sensitive'}")
    return 0


def main(argv: Optional[list] = None) -> int:
    """
    Main entry point for the CLI

    Args:
        argv: Command line arguments (None to use sys.argv)

    Returns:
        int: Exit code (0 for success, non-zero for failure)
    """
    if argv is None:
        argv = sys.argv[1:]

    parser = create_parser()
    args = parser.parse_args(argv)

    handlers = {
        'keygen': handle_keygen_command,
        'encrypt': handle_encrypt_command,
        'decrypt': handle_decrypt_command,
        'classify': handle_classify_command,
    }

    handler = handlers.get(args.command)
    if handler is None:
        # No command specified, show help
        parser.print_help()
        return 1

    try:
        return handler(args)
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 130
    except SecureBankSDKError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
