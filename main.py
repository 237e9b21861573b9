"""Entry point de desarrollo de TokenMeter (sin instalar el paquete).

Uso:
- `python main.py test --file provider.json`
- `python -m main refresh --quiet`

Motivo:
- `core`, `adapters` y `cli` viven bajo `src/`; sin `pip install -e .` Python
  no los encuentra, así que se añade `src/` al `sys.path` antes de importar la CLI.
"""

from __future__ import annotations

import sys
from pathlib import Path


def main() -> None:
    src = Path(__file__).resolve().parent / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))

    from cli.main import run  # noqa: PLC0415

    run()


if __name__ == "__main__":
    main()
