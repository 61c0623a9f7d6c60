"""Command-line interface for snipmatch.

Commands:
    match   - Find a snippet in one or more recordings and write label files
    config  - Show the effective configuration
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import yaml

from .config import SnipmatchConfig, load_config
from .labels import format_offset, timelabels_from_peaks, write_labels
from .logger import setup_logging
from .matcher import Config, Matcher
from .peaks import Peak
from .reader import audio_duration, read_audio, read_snippet

logger = logging.getLogger(__name__)

YES_ANSWERS = ("y", "yes")
NO_ANSWERS = ("n", "no")


def ask_consent(message: str, args: argparse.Namespace, tries: int = 3) -> bool:
    """Ask a yes/no question unless ``--yes`` or ``--no`` answered it already."""
    if args.yes or args.no:
        return args.yes

    prompt = f"{message} [y/n]: "
    for _ in range(tries):
        answer = input(prompt).strip().lower()
        if answer in YES_ANSWERS:
            return True
        if answer in NO_ANSWERS:
            return False
        prompt = "couldn't parse that, please try again: "
    return False


def auto_out_file(main_file: Path) -> Path:
    return main_file.with_suffix(".txt")


def resolve_out_file(args: argparse.Namespace, main_file: Path) -> Path | None:
    """Label file for ``main_file``, or None when nothing should be written."""
    if args.no_out:
        return None
    path = args.out or auto_out_file(main_file)
    if path.exists() and not ask_consent(f"file '{path}' already exists, overwrite", args):
        logger.error("[CLI] Won't overwrite '%s'", path)
        return None
    return path


def log_offsets(peaks: list[Peak], sample_rate: int) -> None:
    if not peaks:
        logger.info("[CLI] No offsets found")
    for i, peak in enumerate(peaks, 1):
        logger.info(
            "[CLI] Offset %d: %s with prominence %.4f",
            i,
            format_offset(peak.start_seconds(sample_rate)),
            peak.prominence,
        )


def apply_overrides(config: SnipmatchConfig, args: argparse.Namespace) -> SnipmatchConfig:
    """Return ``config`` updated with the options given on the command line."""
    matcher_updates = {
        key: value
        for key, value in {
            "prominence": args.prominence,
            "distance": args.distance,
            "chunk_size": args.chunk_size,
            "overlap_length": args.overlap,
            "workers": args.workers,
        }.items()
        if value is not None
    }
    if args.no_scale:
        matcher_updates["scale"] = False
    if args.fancy_bar:
        matcher_updates["fancy_bar"] = True
    if args.fail_fast:
        matcher_updates["fail_fast"] = True

    label_updates = {
        key: value
        for key, value in {
            "name_pattern": args.name_pattern,
            "delay_start": args.delay_start,
        }.items()
        if value is not None
    }

    # re-validate so command line values get the same checks as the file
    data = config.model_dump()
    data["matcher"].update(matcher_updates)
    data["labels"].update(label_updates)
    return SnipmatchConfig(**data)


def cmd_match(args: argparse.Namespace, config: SnipmatchConfig) -> int:
    """Find the snippet in every given recording."""
    config = apply_overrides(config, args)

    logger.debug("[CLI] Collecting snippet data from %s", args.snippet)
    sample_rate, snippet = read_snippet(args.snippet)
    matcher = Matcher(snippet, sample_rate)
    run_config = Config.from_settings(config.matcher, matcher.snippet_duration)
    logger.debug("[CLI] %s", run_config)

    # announce each file only when there is more than one
    level = logging.INFO if len(args.files) > 1 else logging.DEBUG

    for main_file in args.files:
        logger.log(level, "[CLI] Preparing data of '%s'", main_file)
        duration = audio_duration(main_file)
        with read_audio(main_file) as stream:
            matcher.check_sample_rate(stream.sample_rate)
            if stream.duration > duration:
                # metadata lengths of VBR files are estimates and can fall short
                logger.debug(
                    "[CLI] Decoder reports %.2fs, metadata %.2fs; using the decoder's",
                    stream.duration,
                    duration,
                )
                duration = stream.duration
            peaks = matcher.find_offsets(stream, duration, run_config)

        log_offsets(peaks, sample_rate)
        logger.debug("[CLI] Found peaks %s", peaks)

        out_path = resolve_out_file(args, main_file)
        if out_path is not None:
            write_labels(
                timelabels_from_peaks(
                    peaks,
                    sample_rate,
                    delay_start=config.labels.delay_start,
                    name_pattern=config.labels.name_pattern,
                ),
                out_path,
                dry_run=args.dry_run,
            )

    return 0


def cmd_config(args: argparse.Namespace, config: SnipmatchConfig) -> int:
    """Print the effective configuration."""
    print(yaml.safe_dump(config.model_dump(), sort_keys=False), end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snipmatch",
        description="Find a short audio snippet in long recordings",
    )
    parser.add_argument(
        "--config", "-c",
        type=Path,
        default=None,
        help="Path to a YAML config file (default: search the usual locations)",
    )
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("--debug", "-d", action="store_true", help="Print maximum info")
    verbosity.add_argument("--silent", "-s", action="store_true", help="Only print errors")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # match command
    match_parser = subparsers.add_parser("match", help="Find a snippet in recordings")
    match_parser.add_argument(
        "files", nargs="+", type=Path, metavar="FILE", help="File in which the snippet is searched"
    )
    match_parser.add_argument(
        "--snippet", type=Path, required=True, metavar="FILE", help="Snippet to be found"
    )
    match_parser.add_argument(
        "--prominence", "-p",
        type=float,
        help="Minimum prominence of the peaks in percent (default: 13)",
    )
    match_parser.add_argument(
        "--distance",
        type=float,
        metavar="SECONDS",
        help="Minimum distance between matches (default: 480)",
    )
    match_parser.add_argument(
        "--chunk-size",
        type=float,
        metavar="SECONDS",
        help="Length of the chunks processed at once (default: 60)",
    )
    match_parser.add_argument(
        "--overlap",
        type=float,
        metavar="SECONDS",
        help="Overlap between chunks (default: snippet duration)",
    )
    match_parser.add_argument(
        "--workers", "-w",
        type=int,
        help="Number of worker threads (default: 4)",
    )
    match_parser.add_argument(
        "--no-scale",
        action="store_true",
        help="Don't normalize correlations by the snippet's auto-correlation",
    )
    match_parser.add_argument(
        "--fancy-bar", action="store_true", help="Use fancy bar, needs the Fira Code font"
    )
    match_parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Abort when a chunk fails instead of skipping it",
    )
    match_parser.add_argument("--name-pattern", help="Label name, '#' is replaced by the number")
    match_parser.add_argument(
        "--delay-start", type=float, metavar="SECONDS", help="Skip this much after each match"
    )
    match_parser.add_argument(
        "--dry-run", action="store_true", help="Log the label file instead of writing it"
    )
    out_group = match_parser.add_mutually_exclusive_group()
    out_group.add_argument("--out", "-o", type=Path, metavar="FILE", help="File to save the labels")
    out_group.add_argument("--no-out", action="store_true", help="Don't write label files")
    answer_group = match_parser.add_mutually_exclusive_group()
    answer_group.add_argument("--yes", "-y", action="store_true", help="Always answer yes")
    answer_group.add_argument("--no", "-n", action="store_true", help="Always answer no")
    match_parser.set_defaults(func=cmd_match)

    # config command
    config_parser = subparsers.add_parser("config", help="Show the effective configuration")
    config_parser.set_defaults(func=cmd_config)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "match" and args.out is not None and len(args.files) != 1:
        parser.error("--out can only be used with a single input file")

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    level = "DEBUG" if args.debug else "ERROR" if args.silent else None
    setup_logging(config.logging, level)

    try:
        return args.func(args, config)
    except (OSError, ValueError, RuntimeError) as e:
        logger.error("[CLI] %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
