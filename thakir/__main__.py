from __future__ import annotations

from thakir.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
