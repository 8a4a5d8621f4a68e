#!/usr/bin/env python3
"""
Limpar todos os turnos do dia (reset diario). Roda uma vez por dia; use --force para repetir.

Uso:
  python scripts/reset_shifts.py [--date 2024-01-01] [--force]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dispatch.core.log import configure_logging
from dispatch.factory import build_services


def main() -> None:
    ap = argparse.ArgumentParser(description="Reset diario dos turnos")
    ap.add_argument("--date", help="Dia de operacao (YYYY-MM-DD, default: hoje)")
    ap.add_argument("--force", action="store_true", help="Executar mesmo se o reset ja rodou hoje")
    args = ap.parse_args()

    configure_logging()
    services = build_services()
    outcome = services.daily_reset.run(today=args.date, force=args.force)
    if outcome.ran:
        print(f"OK: {outcome.removed} turnos removidos ({outcome.date})")
    else:
        print(f"Nada a fazer: reset de {outcome.date} ja executado")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Erro: {exc}\n")
        raise SystemExit(1)
