"""Script d'activation/désactivation d'extensions pour un cours.

Permet à un opérateur de rejouer une propagation interrompue: relancer `disable` est idempotent
et nettoie les documents restés partiellement mis à jour. Sort avec un code non-zéro en cas
d'échec.
"""

from __future__ import annotations

import argparse
import asyncio
import sys

import structlog

from authoring.core.container import Container
from authoring.core.logging import setup_logging
from authoring.domain.entities import ToggleAction


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Enable or disable extensions for a course")
    parser.add_argument("--course", required=True, help="Course identifier")
    parser.add_argument(
        "--action",
        required=True,
        choices=[a.value for a in ToggleAction],
        help="Toggle action to apply",
    )
    parser.add_argument("extensions", nargs="+", help="Extension ids (extensiontype _id)")
    return parser


def main(argv: list[str] | None = None, container: Container | None = None) -> int:
    """Applique l'action demandée et affiche un bilan `applied=... skipped=... documents=...`."""
    args = build_parser().parse_args(argv)
    container = container or Container()
    setup_logging(container.settings.LOG_LEVEL, container.settings.LOG_JSON)
    log = structlog.get_logger(__name__)
    try:
        result = asyncio.run(container.applier.apply(args.course, args.action, args.extensions))
    except Exception as exc:
        log.error("toggle_failed", course_id=args.course, action=args.action, error=str(exc))
        print(f"error={exc}")
        return 1
    print(
        f"applied={','.join(result.applied)} skipped={','.join(result.skipped)} "
        f"documents={result.documents_updated}"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - script entry
    sys.exit(main())
