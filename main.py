"""Plain entry point for termpad."""

import argparse
import os
import sys
from dataclasses import replace

from core.config import get_config
from core.logging import setup_logging
from core.paths import to_canonical


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="termpad terminal editor")
    parser.add_argument("paths", nargs="*", help="Files to open")
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--no-diagnostics", action="store_true", help="Disable syntax diagnostics")
    parser.add_argument("--horizontal", action="store_true", help="Stack split panes instead of side by side")

    args = parser.parse_args()

    config = get_config()
    if args.log_level:
        config = replace(config, log_level=args.log_level)
    if args.no_diagnostics:
        config = replace(config, diagnostics_enabled=False)
    if args.horizontal:
        config = replace(config, split_direction="horizontal")

    setup_logging(config.log_level, config.log_file)

    from editor.app import create_app
    app = create_app(args.paths, config=config, cwd=to_canonical(os.getcwd()))
    app.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
