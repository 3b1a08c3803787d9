"""Claim persistence with compare-and-swap status writes."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from claimflow.models import Claim, db
from claimflow.services.errors import ClaimNotFound, ConcurrentModification, dependency_guard

logger = logging.getLogger(__name__)

CLAIM_NUMBER_ATTEMPTS = 3


class ClaimStore:
    def get_claim(self, claim_id: str) -> Optional[Claim]:
        if not claim_id:
            return None
        with dependency_guard("Claim store"):
            return db.session.get(Claim, str(claim_id))

    def require_claim(self, claim_id: str) -> Claim:
        claim = self.get_claim(claim_id)
        if claim is None:
            raise ClaimNotFound(f"Claim not found: {claim_id}")
        return claim

    def update_claim(
        self,
        claim_id: str,
        expected_status: str,
        expected_version: int,
        patch: Dict[str, Any],
        related: Iterable[db.Model] = (),
    ) -> Claim:
        """Apply ``patch`` only if the claim still has the status and version read earlier.

        ``related`` rows (audit entries) are committed in the same transaction,
        so a lost race leaves nothing behind.
        """
        values = dict(patch)
        values["version"] = expected_version + 1
        with dependency_guard("Claim store"):
            db.session.add_all(list(related))
            updated = Claim.query.filter_by(
                id=claim_id, status=expected_status, version=expected_version
            ).update(values, synchronize_session=False)
            if updated == 0:
                db.session.rollback()
                logger.info(f"Claim {claim_id} changed since it was read (expected {expected_status} v{expected_version})")
                raise ConcurrentModification(
                    f"Claim {claim_id} was modified concurrently; reload and retry."
                )
            db.session.commit()
            claim = db.session.get(Claim, claim_id)
        return claim

    def create_claim(self, prefix: str = "CLM", **fields: Any) -> Claim:
        """Insert a claim under the next free ``{prefix}-{year}-NNNN`` number.

        A concurrent insert can take the number first; the unique constraint
        rejects the loser, which retries with a fresh number.
        """
        for attempt in range(1, CLAIM_NUMBER_ATTEMPTS + 1):
            with dependency_guard("Claim store"):
                claim = Claim(claim_number=self._next_claim_number(prefix), **fields)
                db.session.add(claim)
                try:
                    db.session.commit()
                except IntegrityError as exc:
                    db.session.rollback()
                    if "claim_number" not in str(exc.orig):
                        raise
                    logger.warning(f"Claim number {claim.claim_number} already taken (attempt {attempt})")
                    continue
            return claim
        raise ConcurrentModification("Could not allocate a claim number; retry the submission.")

    @staticmethod
    def _next_claim_number(prefix: str) -> str:
        year = datetime.utcnow().year
        stem = f"{prefix}-{year}-"
        latest = (
            db.session.query(Claim.claim_number)
            .filter(Claim.claim_number.like(f"{stem}%"))
            .order_by(func.length(Claim.claim_number).desc(), Claim.claim_number.desc())
            .first()
        )
        suffix = latest[0][len(stem):] if latest else ""
        next_number = int(suffix) + 1 if suffix.isdigit() else 1
        return f"{stem}{next_number:04d}"
