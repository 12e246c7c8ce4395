import logging
from datetime import datetime
from sqlmodel import Session
from app.database import engine
from app.services.contract_ledger import expire_contracts

logger = logging.getLogger(__name__)


def expire_lapsed_contracts(now: datetime | None = None) -> int:
    with Session(engine) as session:
        expired = expire_contracts(session, now=now)

    logger.info(f"Expired {expired} contracts")
    return expired


if __name__ == "__main__":
    expire_lapsed_contracts()
