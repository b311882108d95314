"""python -m brepl で対話シェルを起動する。"""

from __future__ import annotations

from .cli import app

app()
