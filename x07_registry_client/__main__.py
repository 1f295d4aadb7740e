"""
Resolve a package from the sparse index and print the result as JSON.

Usage: ``x07-registry-resolve <package> [version]``
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional

from x07_registry_client import __version__
from x07_registry_client.core.dependencies import get_registry_client, reset_dependencies
from x07_registry_client.domain.errors import to_api_error
from x07_registry_client.domain.registry_utils import canonical_json, is_official_package


async def resolve(name: str, version: Optional[str] = None) -> dict:
    client = await get_registry_client()
    try:
        entries = await client.get_entries(name)
        latest = await client.get_latest_version(name)
        index_config = await client.get_index_config()
        target = version or latest
        result = {
            "name": name,
            "official": is_official_package(name, index_config.verified_namespaces),
            "latest": latest,
            "versions": [
                {"version": e.version, "yanked": e.yanked, "cksum": e.content_checksum}
                for e in entries
            ],
        }
        if target:
            metadata = await client.get_metadata(name, target)
            result["package"] = metadata.package.model_dump(exclude_none=True)
            result["download_url"] = await client.download_url(name, target)
        return result
    finally:
        await reset_dependencies()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="x07-registry-resolve",
        description="Resolve a package from the x07 sparse index and print the result as JSON",
    )
    parser.add_argument("--version", action="version", version=f"x07-registry-resolve {__version__}")
    parser.add_argument("name", help="Package name, e.g. x07lang-demo")
    parser.add_argument(
        "package_version",
        nargs="?",
        metavar="version",
        help="Version to describe (default: latest non-yanked version)",
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 2

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    try:
        result = asyncio.run(resolve(args.name, args.package_version))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except Exception as e:
        err = to_api_error(e)
        print(canonical_json(err.model_dump(exclude_none=True)), end="", file=sys.stderr)
        return 1

    print(canonical_json(result), end="")
    return 0


if __name__ == "__main__":
    sys.exit(main())
