import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import config
from .core import BurnInApp, output_paths
from .exceptions import DVMetaError
from .models import ItemOutcome, Layout, MediaItem, ReaderKind
from .policy import normalize_policy
from .reporting import ReportGenerator
from .scanning.filesystem import MediaScanner
from .settings import PipelineSettings

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_DELEGATE = 2   # at least one item needs a plain (no burn-in) conversion


def setup_logging(log_dir: Path, verbose: bool):
    """Sets up logging to both console and a file in the output directory."""
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / config.LOG_FILENAME

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Silence chatty libraries
    logging.getLogger("pymediainfo").setLevel(logging.WARNING)


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description="DV Metadata Burn-In: recording date/time overlay + subtitle timelines")

    p.add_argument("src", type=Path, help="Media file (single mode) or folder (batch mode)")
    p.add_argument("--mode", choices=["single", "batch"], default="single")
    p.add_argument("--layout", choices=[l.value for l in Layout], default=Layout.STACKED.value,
                   help="stacked = date above time, single = one line")
    p.add_argument("--missing-meta", default="skip_burnin_convert",
                   help="error | skip_burnin_convert | skip_file")

    p.add_argument("--fps", type=float, default=None, help="Frame rate (probed from the media file if omitted)")
    p.add_argument("--xml", type=Path, default=None, help="dvrescue XML for the media file (single mode)")
    p.add_argument("--json", type=Path, default=None, help="dvrescue JSON for the media file (single mode)")
    p.add_argument("--log", type=Path, default=None, help="dvrescue text log for the media file (single mode)")

    p.add_argument("--out-dir", type=Path, default=None, help="Where to write artifacts (default: next to the media)")
    p.add_argument("--font-name", default=config.DEFAULT_FONT_NAME, help="Font name for the ASS style")
    p.add_argument("--min-source-rows", type=int, default=config.DEFAULT_MIN_SOURCE_ROWS)
    p.add_argument("--min-segments", type=int, default=config.DEFAULT_MIN_SEGMENTS)
    p.add_argument("--log-index-base", type=int, choices=[0, 1],
                   default=config.DEFAULT_INDEX_BASE[ReaderKind.LOG],
                   help="Frame index shown at t=0 in the text log")
    p.add_argument("--recursive", action="store_true", help="Batch mode: descend into sub-folders")
    p.add_argument("--timeline-debug", action="store_true", help="Also write a per-frame timeline TSV")
    p.add_argument("--report-csv", type=Path, default=None, help="Write a per-item CSV report")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return p.parse_args(argv)


def build_settings(args) -> PipelineSettings:
    index_base = dict(config.DEFAULT_INDEX_BASE)
    index_base[ReaderKind.LOG] = args.log_index_base
    return PipelineSettings(
        frame_rate=args.fps,
        layout=Layout(args.layout),
        missing_meta=normalize_policy(args.missing_meta),
        min_source_rows=args.min_source_rows,
        min_segments=args.min_segments,
        index_base=index_base,
        font_name=args.font_name,
    )


def collect_items(args) -> List[MediaItem]:
    scanner = MediaScanner()
    if args.mode == "batch":
        return list(scanner.scan(args.src, recursive=args.recursive))

    if not args.src.is_file():
        raise FileNotFoundError(f"Input file not found: {args.src}")

    # Explicit sources win; anything not given falls back to sidecar discovery
    sources = scanner.find_sources(args.src)
    explicit = {ReaderKind.MARKUP: args.xml, ReaderKind.NESTED: args.json, ReaderKind.LOG: args.log}
    for kind, path in explicit.items():
        if path is not None:
            sources[kind] = path
    return [MediaItem(args.src, sources)]


def exit_code_for(outcomes: List[ItemOutcome]) -> int:
    if any(o == ItemOutcome.FAILED for o in outcomes):
        return EXIT_FAILED
    if any(o == ItemOutcome.DELEGATE_CONVERT for o in outcomes):
        return EXIT_DELEGATE
    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    src = args.src.resolve()
    log_dir = args.out_dir.resolve() if args.out_dir else (src if src.is_dir() else src.parent)
    setup_logging(log_dir, args.verbose)

    logging.info("=== DV Metadata Burn-In Started ===")
    logging.info(f"Source: {src} (mode={args.mode}, layout={args.layout})")

    try:
        app = BurnInApp(build_settings(args))
        items = collect_items(args)
    except (DVMetaError, OSError) as e:
        logging.error(f"{e}")
        return EXIT_FAILED

    if not items:
        logging.warning(f"No media files found in {src}")
        return EXIT_OK

    try:
        if args.mode == "batch":
            results = app.process_batch(items, args.out_dir, timeline_debug=args.timeline_debug)
        else:
            item = items[0]
            overlay_path, subtitle_path = output_paths(item, args.out_dir, app.settings.layout.value)
            debug_path = None
            if args.timeline_debug:
                debug_path = overlay_path.with_name(config.TIMELINE_DEBUG_FILENAME.format(stem=item.stem))
            results = [app.process_item(item, overlay_path, subtitle_path, debug_path)]
    except KeyboardInterrupt:
        logging.warning("Operation cancelled by user.")
        return EXIT_FAILED
    except DVMetaError as e:
        logging.error(f"Failed to process {args.src}: {e}")
        return EXIT_FAILED

    if args.report_csv:
        ReportGenerator().generate_batch_report(results, str(args.report_csv))

    code = exit_code_for([r.outcome for r in results])
    if code == EXIT_DELEGATE:
        logging.info("One or more items need a plain conversion without burn-in.")
    return code


if __name__ == "__main__":
    sys.exit(main())
