"""
Audit logging for sign requests. Records who asked for which meeting and the final role;
never the signature, ZAK, access tokens or request body.
GET /audit lists recent events and is only available when AUDIT_API_TOKEN is configured.
"""
import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sign_server.config import AUDIT_API_TOKEN
from sign_server.database import get_db
from sign_server.models import AuditLog

logger = logging.getLogger(__name__)

EVENT_SIGN_ISSUED = "sign_issued"
EVENT_SIGN_DEMOTED = "sign_demoted"
EVENT_SIGN_REJECTED = "sign_rejected"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"


def log_audit(
    db: Session,
    event_type: str,
    *,
    status_code: int,
    uuid: str | None = None,
    meeting_number: str | None = None,
    role: int | None = None,
    ip: str | None = None,
    outcome: str = OUTCOME_SUCCESS,
) -> None:
    """Append one audit record. A storage failure is logged and never fails the request."""
    try:
        db.add(
            AuditLog(
                event_type=event_type,
                uuid=uuid,
                meeting_number=meeting_number,
                role=role,
                status_code=status_code,
                ip=ip,
                outcome=outcome,
            )
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Could not write audit record %s: %s", event_type, e)


router = APIRouter(tags=["audit"])
security = HTTPBearer(auto_error=False)


def require_audit_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> None:
    if AUDIT_API_TOKEN is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
    if credentials is None or not hmac.compare_digest(credentials.credentials, AUDIT_API_TOKEN):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "invalid_token"},
            headers={"WWW-Authenticate": "Bearer"},
        )


def query_audit_logs(
    db: Session,
    *,
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
) -> list[dict]:
    """Most recent first."""
    q = db.query(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    if event_type:
        q = q.filter(AuditLog.event_type == event_type)
    if outcome:
        q = q.filter(AuditLog.outcome == outcome)
    rows = q.limit(min(max(1, limit), 500)).all()
    return [
        {
            "created_at": r.created_at.isoformat() if r.created_at else None,
            "event_type": r.event_type,
            "uuid": r.uuid,
            "meeting_number": r.meeting_number,
            "role": r.role,
            "status_code": r.status_code,
            "ip": r.ip,
            "outcome": r.outcome,
        }
        for r in rows
    ]


@router.get("/audit", dependencies=[Depends(require_audit_token)])
def list_audit_logs(
    limit: int = 100,
    event_type: str | None = None,
    outcome: str | None = None,
    db: Session = Depends(get_db),
):
    return query_audit_logs(db, limit=limit, event_type=event_type, outcome=outcome)
