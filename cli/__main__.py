"""Entry point for wordsnap CLI client."""

import argparse
import sys

from cli.api_client import WordSnapAPIClient
from cli.console import ConsoleUI


def main():
    parser = argparse.ArgumentParser(description='WordSnap - vocabulary pronunciation and spelling practice')
    parser.add_argument(
        '--server',
        default='http://localhost:8000',
        help='Server URL (default: http://localhost:8000)'
    )
    parser.add_argument(
        '--user',
        default='default',
        help='User ID (default: default)'
    )
    args = parser.parse_args()

    client = WordSnapAPIClient(base_url=args.server, owner_id=args.user)
    ui = ConsoleUI(client)

    try:
        ui.run()
    except KeyboardInterrupt:
        print('\nGoodbye!')
        sys.exit(0)


if __name__ == '__main__':
    main()
