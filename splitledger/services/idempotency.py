"""Exactly-once execution of ledger writes keyed by a client token.

A key moves absent -> PENDING -> DONE. The PENDING claim is committed on its
own so the claim table's primary key decides which of several racing requests
does the work. The winner runs the write and flips the claim to DONE in one
transaction; everyone else either waits (409) or replays the stored result.
"""
import logging
from datetime import timedelta
from typing import Any, Callable, Dict, Optional, Tuple

from fastapi.encoders import jsonable_encoder
from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError as UniqueViolation, SQLAlchemyError
from sqlmodel import Session

from splitledger.config import config
from splitledger.db import UnitOfWork
from splitledger.errors import (
    CLIENT_ERRORS,
    ConflictError,
    IdempotencyKeyReused,
    IdempotencyKeyRequired,
    StorageError,
)
from splitledger.models.claim import DONE, PENDING, MutationClaim
from splitledger.models.clock import utcnow

Result = Tuple[int, Dict[str, Any]]
MutationOp = Callable[[Session], Result]


class MutationGate:
    def __init__(self, engine):
        self.engine = engine

    def execute(self, key: Optional[str], scope: str, op: MutationOp, actor_id: Optional[int] = None) -> Result:
        key = (key or "").strip()
        if not key:
            raise IdempotencyKeyRequired("Idempotency-Key header is required")

        owner = self._claim(key, scope, actor_id)
        if owner is None:
            return self._replay(key, scope)
        logging.info("claimed idempotency key %s for %s", key, scope)

        try:
            with UnitOfWork(self.engine) as uow:
                status, body = op(uow.session)
                body = jsonable_encoder(body)
                self._finalize(uow.session, key, owner, status, body)
            return status, body
        except CLIENT_ERRORS as exc:
            # the write was rolled back; remember the rejection for retries
            status, body = exc.status_code, exc.to_body()
            try:
                with UnitOfWork(self.engine) as uow:
                    self._finalize(uow.session, key, owner, status, body)
            except Exception:
                self._release(key, owner)
                raise
            logging.info("idempotency key %s rejected with %s: %s", key, status, exc.message)
            return status, body
        except Exception:
            self._release(key, owner)
            raise

    def _claim(self, key: str, scope: str, actor_id: Optional[int]) -> Optional[str]:
        claim = MutationClaim(key=key, scope=scope, actor_id=actor_id, status=PENDING)
        owner = claim.owner
        with Session(self.engine) as s:
            s.add(claim)
            try:
                s.commit()
            except UniqueViolation:
                s.rollback()
                return None
            except SQLAlchemyError as e:
                s.rollback()
                raise StorageError("could not record idempotency claim") from e
        return owner

    def _replay(self, key: str, scope: str) -> Result:
        with Session(self.engine) as s:
            claim = s.get(MutationClaim, key)
        if claim is None or claim.status == PENDING:
            # claim is None when the owner released it between our insert and this read
            logging.info("idempotency key %s is still being processed", key)
            raise ConflictError("request is currently being processed; retry later")
        if claim.scope != scope:
            raise IdempotencyKeyReused(f"idempotency key {key!r} was already used for a different request")
        logging.info("replaying stored result for idempotency key %s", key)
        return claim.result_status, claim.result_body

    def _finalize(self, session: Session, key: str, owner: str, status: int, body: Dict[str, Any]) -> None:
        result = session.exec(
            update(MutationClaim)
            .where(MutationClaim.key == key, MutationClaim.owner == owner, MutationClaim.status == PENDING)
            .values(status=DONE, result_status=status, result_body=body, completed_at=utcnow())
        )
        if result.rowcount != 1:
            # the claim was reaped and possibly re-claimed; this attempt must not commit
            logging.warning("lost idempotency claim %s before completion; rolling back", key)
            raise ConflictError("idempotency claim expired before the request completed; retry later")

    def _release(self, key: str, owner: str) -> None:
        try:
            with UnitOfWork(self.engine) as uow:
                result = uow.session.exec(
                    delete(MutationClaim).where(
                        MutationClaim.key == key, MutationClaim.owner == owner, MutationClaim.status == PENDING)
                )
            if result.rowcount:
                logging.warning("released idempotency key %s after a failed write", key)
        except StorageError:
            logging.exception("could not release idempotency key %s; it stays PENDING until reaped", key)


def reap_stale_claims(engine, ttl_seconds: Optional[int] = None) -> int:
    """Delete PENDING claims older than the TTL and return how many went."""
    ttl = config.IDEMPOTENCY_PENDING_TTL if ttl_seconds is None else ttl_seconds
    cutoff = utcnow() - timedelta(seconds=ttl)
    with UnitOfWork(engine) as uow:
        result = uow.session.exec(
            delete(MutationClaim).where(MutationClaim.status == PENDING, MutationClaim.created_at < cutoff)
        )
        reaped = result.rowcount or 0
    if reaped:
        logging.warning("reaped %d stale idempotency claims", reaped)
    return reaped
