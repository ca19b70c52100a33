"""RPG Maker Re-inserter: writes translated line files back into a game.

Launch with: python main.py --data <data dir> --translation <dir> --output <dir>
"""

import argparse
import logging
import sys

from reinserter.project_model import ReinsertError
from reinserter.translation_engine import WriterConfig, WriteWorker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Write translated text back into RPG Maker MV/MZ data files.")
    parser.add_argument("--config", help="JSON settings file (flags override it)")
    parser.add_argument("--data", dest="data_dir",
                        help="original data/ folder")
    parser.add_argument("--translation", dest="translation_dir",
                        help="folder holding maps/, other/ and plugins/ line files")
    parser.add_argument("--output", dest="output_dir",
                        help="where translated data files are written")
    parser.add_argument("--plugins", dest="plugins_file",
                        help="original js/plugins.js (omit to skip plugins)")
    parser.add_argument("--plugins-output", dest="plugins_output",
                        help="translated plugins.js path (default: <output>/plugins.js)")
    parser.add_argument("--heuristics", dest="heuristics_file",
                        help="replacement heuristics.json")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="log per-document lookup misses")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    overrides = {
        "data_dir": args.data_dir,
        "translation_dir": args.translation_dir,
        "output_dir": args.output_dir,
        "plugins_file": args.plugins_file,
        "plugins_output": args.plugins_output,
        "heuristics_file": args.heuristics_file,
    }
    try:
        if args.config:
            config = WriterConfig.load(args.config, **overrides)
        else:
            config = WriterConfig(**{k: v or "" for k, v in overrides.items()})
        worker = WriteWorker(config)
    except (ReinsertError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    worker.file_done.connect(lambda name: print(f"Wrote {name}"))
    worker.error.connect(lambda msg: print(f"Error: {msg}", file=sys.stderr))
    worker.finished.connect(lambda s: print(
        f"Done: {s['documents']} files, {s['replaced']} strings translated, "
        f"{s['missed']} left as is."))

    return 0 if worker.run() else 1


if __name__ == "__main__":
    sys.exit(main())
