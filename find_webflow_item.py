# /// script
# requires-python = "==3.12.*"
# dependencies = [
#   "httpx~=0.28.0"
# ]
# ///

"""
Finds one item in a Webflow CMS collection and prints its JSON.

Usage:
  WEBFLOW_API_TOKEN=... WEBFLOW_SITE_ID=... uv run ./find_webflow_item.py --collection-name dogs --item-name blue

Args:
  --collection-name / --collection-slug / --collection-id (at least one; checked in that order)
  --item-name / --item-id (at least one; both must match when both are given)

Exit codes:
  0 -- item found and printed
  1 -- no such collection or item
  2 -- configuration, network, or API error
"""

import argparse
import json
import logging
import os
import sys

from webflow_api import WebflowClient, WebflowError, WebflowInterface

## setup logging ----------------------------------------------------
log_level_name: str = os.getenv('LOG_LEVEL', 'INFO').upper()
log_level = getattr(
    logging, log_level_name, logging.INFO
)  # maps the string name to the corresponding logging level constant; defaults to INFO
logging.basicConfig(
    level=log_level,
    format='[%(asctime)s] %(levelname)s [%(module)s-%(funcName)s()::%(lineno)d] %(message)s',
    datefmt='%d/%b/%Y %H:%M:%S',
)
if log_level <= logging.INFO:
    for noisy in ('httpx', 'httpcore'):  # prevent httpx from logging
        lg = logging.getLogger(noisy)
        lg.setLevel(logging.WARNING)
        lg.propagate = False  # don't bubble up to root
log = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse cli args.
    """
    parser = argparse.ArgumentParser(description='Find an item in a Webflow CMS collection and print its JSON.')
    parser.add_argument('--collection-name', default='', help='Collection name (case-insensitive), eg "Blog Posts"')
    parser.add_argument('--collection-slug', default='', help='Collection slug (case-insensitive), eg blog-posts')
    parser.add_argument('--collection-id', default='', help='Collection id, eg 580e63fc8c9a982ac9b8b745')
    parser.add_argument('--item-name', default='', help='Item name (exact match)')
    parser.add_argument('--item-id', default='', help='Item id (exact match)')
    args = parser.parse_args(argv)
    if not (args.collection_name or args.collection_slug or args.collection_id):
        parser.error('one of --collection-name, --collection-slug, or --collection-id is required')
    if not (args.item_name or args.item_id):
        parser.error('one of --item-name or --item-id is required')
    return args


def find_and_print(api: WebflowInterface, args: argparse.Namespace) -> int:
    """
    Looks up the item and prints it; returns the exit code.
    Called by: main()
    """
    item: dict[str, object] | None = api.get_item(
        collection_name=args.collection_name,
        collection_slug=args.collection_slug,
        collection_id=args.collection_id,
        item_name=args.item_name,
        item_id=args.item_id,
    )
    if item is None:
        print('No matching collection or item found.', file=sys.stderr)
        return 1
    print(json.dumps(item, indent=2, ensure_ascii=False))
    return 0


def main(argv: list[str] | None = None, api: WebflowInterface | None = None) -> int:
    """
    Main manager. Builds a client from the environment unless one is passed in.
    """
    args = parse_args(argv)
    log.debug(f'args: {args}')
    try:
        if api is not None:
            return find_and_print(api, args)
        with WebflowClient.from_env() as client:
            return find_and_print(client, args)
    except WebflowError as exc:
        log.debug(f'lookup failed; error type, ``{type(exc).__name__}``')
        print(f'Error: {exc}', file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
