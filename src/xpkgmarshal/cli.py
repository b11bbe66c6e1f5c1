"""xpkg-marshal CLI: inspect package artifacts and validate resources against them."""

import argparse
import json
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path

import yaml


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.DEBUG if verbose else logging.ERROR if quiet else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", stream=sys.stderr)


def _add_source_arguments(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument(
        "--dir",
        type=Path,
        help="Package directory named <name>@<version>"
    )
    source.add_argument(
        "--layout",
        type=Path,
        help="OCI image layout directory holding the package image"
    )
    parser.add_argument(
        "--registry",
        default=None,
        help="Registry host (defaults to the default public registry)"
    )
    parser.add_argument(
        "--repo",
        default=None,
        help="Repository path (defaults to the directory name for --dir)"
    )
    parser.add_argument(
        "--pkg-version",
        dest="pkg_version",
        default=None,
        help="Package version (required with --layout)"
    )
    parser.add_argument(
        "--reject-duplicate-schemas",
        action="store_true",
        help="Fail when two schemas share a group/version/kind instead of keeping the last"
    )


def _load_package(args):
    from xpkgmarshal.api import marshal_directory, marshal_image_layout
    from xpkgmarshal.kernel.config import DEFAULT_REGISTRY, MarshalerConfig

    config = MarshalerConfig(
        duplicate_schemas="reject" if args.reject_duplicate_schemas else "overwrite"
    )
    registry = args.registry or DEFAULT_REGISTRY
    if args.dir is not None:
        return marshal_directory(args.dir, registry=registry, repo=args.repo, config=config)
    if not args.repo or not args.pkg_version:
        raise ValueError("--layout requires --repo and --pkg-version")
    return marshal_image_layout(args.layout, registry, args.repo, args.pkg_version, config=config)


def main():
    """Main CLI entry point for xpkg-marshal commands."""
    try:
        pkg_version = get_version("xpkg-marshal")
    except PackageNotFoundError:
        pkg_version = "dev"

    parser = argparse.ArgumentParser(
        prog="xpkg-marshal",
        description="xpkg-marshal: marshal package artifacts into schema-indexed descriptors"
    )
    parser.add_argument("--version", action="version", version=f"xpkg-marshal {pkg_version}")
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log each pipeline stage."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    inspect_parser = subparsers.add_parser(
        "inspect",
        help="Marshal a package and print its summary as JSON",
        parents=[parent_parser]
    )
    _add_source_arguments(inspect_parser)

    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate resource documents against a package's schemas",
        parents=[parent_parser]
    )
    _add_source_arguments(validate_parser)
    validate_parser.add_argument(
        "resource",
        type=Path,
        help="YAML file with one or more resource documents"
    )

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    _configure_logging(args.verbose, args.quiet)

    from xpkgmarshal.api import summarize, validate_resource
    from xpkgmarshal.codes import MarshalError
    from xpkgmarshal.kernel.parser import load_documents

    try:
        pkg = _load_package(args)
    except (MarshalError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.command == "inspect":
        print(json.dumps(summarize(pkg).model_dump(), indent=2))
        sys.exit(0)

    if args.command == "validate":
        try:
            documents = [d for d in load_documents(args.resource.read_text(encoding="utf-8")) if d is not None]
        except (OSError, yaml.YAMLError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)

        failed = 0
        for i, document in enumerate(documents):
            result = validate_resource(pkg, document)
            if result.ok:
                if not args.quiet:
                    print(f"[OK] document {i}")
                continue
            failed += 1
            print(f"[FAILED] document {i}")
            for error in result.errors:
                print(f"  {error.path or '<root>'}: {error.message}")
        if not args.quiet:
            print(f"  Documents: {len(documents)}")
            print(f"  Failed: {failed}")
        sys.exit(1 if failed else 0)


if __name__ == "__main__":
    main()
