# map_skeleton.py
"""
Command line wrapper around the conversion pipeline.

  python map_skeleton.py convert avatar.scene.json avatar.humanoid.json --llm --context "mixamo export"
"""
import argparse
import asyncio
import logging
import sys

from dotenv import load_dotenv


def build_parser():
    parser = argparse.ArgumentParser(prog="map-skeleton", description="Map a vendor skeleton onto the humanoid bone set")
    sub = parser.add_subparsers(dest="command")
    conv = sub.add_parser("convert", help="map a scene description and write a humanoid manifest")
    conv.add_argument("input", help="scene description JSON")
    conv.add_argument("output", help="humanoid manifest JSON to write")
    conv.add_argument("--min-confidence", type=float, default=None, help="acceptance threshold in [0, 1]")
    conv.add_argument("--llm", action="store_true", help="ask the external resolver for unmapped slots")
    conv.add_argument("--llm-fallback", action="store_true", help="keep the heuristic mapping if the resolver fails")
    conv.add_argument("--context", help="free text passed to the external resolver")
    conv.add_argument("--name", help="avatar name written to the manifest meta")
    return parser


def run_cli(argv) -> int:
    load_dotenv()
    # services read the environment at import time
    from services import settings
    from services.conversion import ConversionOptions, convert_skeleton
    from services.errors import LlmResolverError, MissingRequiredBonesError, SceneFormatError, SkeletonNotFoundError
    from services.llm_resolver import resolver_from_env

    parser = build_parser()
    if not argv:
        parser.print_help()
        return 0
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 1

    if args.command != "convert":
        parser.print_help(sys.stderr)
        return 1

    threshold = settings.MIN_CONFIDENCE if args.min_confidence is None else args.min_confidence
    if not 0.0 <= threshold <= 1.0:
        print(f"error: --min-confidence must be between 0 and 1, got {threshold}", file=sys.stderr)
        return 1

    resolver = None
    if args.llm:
        resolver = resolver_from_env()
        if resolver is None:
            print("error: --llm needs OPENAI_API_KEY", file=sys.stderr)
            return 1

    opts = ConversionOptions(
        input_path=args.input,
        output_path=args.output,
        meta={"name": args.name} if args.name else None,
        minimum_confidence=threshold,
        llm_resolver=resolver,
        llm_context=args.context,
        llm_failure_policy="fallback" if args.llm_fallback else "raise",
    )
    try:
        res = asyncio.run(convert_skeleton(opts))
    except (FileNotFoundError, SceneFormatError, SkeletonNotFoundError,
            MissingRequiredBonesError, LlmResolverError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    for w in res.warnings:
        print(f"warning: {w}", file=sys.stderr)
    mapped = len(res.manifest["humanBones"])
    print(f"wrote {res.manifest_path} ({mapped} humanoid bones)")
    return 0


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    sys.exit(run_cli(sys.argv[1:]))


if __name__ == "__main__":
    main()
