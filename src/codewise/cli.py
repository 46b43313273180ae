# src/codewise/cli.py
import sys
import argparse
import logging
import os
from pathlib import Path

# Module imports
from codewise.config import (
    DEFAULT_CONFIG_FILE,
    DEFAULT_OUTPUT_FILE,
    OutputFormat,
    apply_overrides,
    load_config,
)
from codewise.core.assembler import assemble
from codewise.core.ignore import build_ignore_matcher, load_gitignore
from codewise.core.selector import select_files
from codewise.core.tree import generate_inclusion_tree
from codewise.models import CodewiseError, OutputError
from codewise.utils.tokenizer import Tokenizer

logger = logging.getLogger("codewise")


def create_arg_parser():
    parser = argparse.ArgumentParser(
        prog="codewise",
        description="Generate codebase context for LLMs: a file tree plus the contents of every selected file.",
    )
    parser.add_argument("root_dir", type=str, nargs="?", default=os.getcwd(), help="Project root directory")
    parser.add_argument("-c", "--config", type=str, default=DEFAULT_CONFIG_FILE, help="Path to configuration file")
    parser.add_argument("-o", "--output", type=str, default=DEFAULT_OUTPUT_FILE, help="Output file path")
    parser.add_argument(
        "-f", "--format",
        type=str,
        choices=[f.value for f in OutputFormat],
        default=None,
        help="Output format (default: markdown)",
    )
    parser.add_argument("-s", "--max-size", type=int, default=None, help="Maximum file size in KB (default: 100)")
    parser.add_argument("-i", "--include", nargs="+", default=None, help="Include glob patterns (replace configured ones)")
    parser.add_argument("-e", "--exclude", nargs="+", default=None, help="Exclude glob patterns (added to configured ones)")
    parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def resolve_against(root_dir: Path, path_str: str) -> Path:
    path = Path(path_str)
    return path if path.is_absolute() else root_dir / path


def relative_output_path(root_dir: Path, output_file: Path) -> str:
    """Output path relative to the root, or '..'-prefixed if it lies outside."""
    return Path(os.path.relpath(output_file.resolve(), root_dir)).as_posix()


def confirm(question: str) -> bool:
    answer = input(question).strip().lower()
    return answer in ("y", "yes")


def write_output(content: str, output_file: Path) -> None:
    try:
        with open(output_file, "w", encoding="utf-8", newline="") as f:
            f.write(content)
    except OSError as e:
        raise OutputError(f"Error writing to file {output_file}: {e}") from e


def main():
    parser = create_arg_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        # 1. Setup
        root_dir = Path(args.root_dir).resolve()
        if not root_dir.is_dir():
            logger.error(f"Invalid directory '{root_dir}'")
            sys.exit(1)

        output_file = resolve_against(root_dir, args.output)
        config = load_config(resolve_against(root_dir, args.config))
        config = apply_overrides(
            config,
            output_format=args.format,
            max_size_kb=args.max_size,
            include=args.include,
            exclude=args.exclude,
        )

        print("--- codewise ---")
        print(f"Scanning: {root_dir}")
        print(f"Output:   {output_file}")
        print(f"Format:   {config.output_format.value}")

        # 2. Ignore rules
        matcher = build_ignore_matcher(
            config.exclude,
            relative_output_path(root_dir, output_file),
            load_gitignore(root_dir),
        )

        # 3. Selection & review
        files = select_files(root_dir, config, matcher)
        if not files:
            print("No matching files found.")
            return

        print("\n--- Files to be included ---")
        print(generate_inclusion_tree(files), end="")
        print(f"Total files: {len(files)}")

        if not args.yes and not confirm("Do you want to proceed with the context generation? (y/n): "):
            print("Context generation aborted.")
            return

        # 4. Output generation
        logger.info("Generating code context...")
        document = assemble(root_dir, config, matcher, files=files)
        write_output(document, output_file)

        print(f"\nSuccess! Context written to: {output_file}")
        print(f"Estimated tokens: {Tokenizer.count(document)}")

    except KeyboardInterrupt:
        print("\nCancelled.")
        sys.exit(1)

    except CodewiseError as e:
        logger.error(str(e))
        sys.exit(1)

    except Exception as e:
        logger.error(f"An unexpected error occurred: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
