#!/usr/bin/env python3
"""
Copiar pessoas (e filiais) entre o armazenamento local e o Postgres.

Uso:
  python scripts/sync_people.py [--direction local_to_remote|remote_to_local] [--with-branches]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Garantir que o pacote dispatch seja importável quando rodado diretamente
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from dispatch.core.log import configure_logging
from dispatch.factory import build_facade
from dispatch.services.sync_service import SyncDirection, SyncEngine


def main() -> None:
    ap = argparse.ArgumentParser(description="Sincronizar pessoas entre backends")
    ap.add_argument(
        "--direction",
        choices=[d.value for d in SyncDirection],
        default=SyncDirection.LOCAL_TO_REMOTE.value,
        help="Sentido da copia (default: local_to_remote)",
    )
    ap.add_argument("--with-branches", action="store_true", help="Copiar filiais antes das pessoas")
    args = ap.parse_args()

    configure_logging()
    engine = SyncEngine.from_facade(build_facade())
    if args.with_branches:
        summary = engine.sync_all(args.direction)
    else:
        summary = engine.sync_all_people(args.direction)

    print(f"OK: {summary.succeeded}/{summary.attempted} registros copiados ({args.direction})")
    for error in summary.errors:
        print(f"  falhou {error['id']}: {error['kind']}: {error['error']}")
    if summary.failed:
        raise SystemExit(2)


if __name__ == "__main__":
    try:
        main()
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Erro: {exc}\n")
        raise SystemExit(1)
