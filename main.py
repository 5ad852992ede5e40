"""Entry point de desarrollo (sin instalación editable).

Uso:
- `python main.py query example.com`
- `python main.py tui`

El código vive en `src/` (layout tipo "src"): sin `pip install -e .` Python no
encuentra `cli`, `core` ni `adapters`, así que se añade `src/` al path.
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    # Terminales Windows (cp1252): los textos en turco necesitan UTF-8.
    if sys.platform == "win32":
        sys.stdout.reconfigure(encoding="utf-8")
        sys.stderr.reconfigure(encoding="utf-8")

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
