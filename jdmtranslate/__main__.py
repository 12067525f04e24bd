"""Module entrypoint for running jdmtranslate as ``python -m jdmtranslate``."""

from __future__ import annotations

from jdmtranslate.cli import main


if __name__ == "__main__":
    main()
