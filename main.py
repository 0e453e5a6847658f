"""CLI entrypoint for the image scroller."""

import sys

from image_scroller.cli import main


if __name__ == "__main__":
    sys.exit(main())
