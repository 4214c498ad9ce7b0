import datetime, logging
from sqlalchemy import delete
from sqlalchemy.orm import Session

from trafficfines.src.db import AccessToken, sessionMaker
from trafficfines.src.otp import PasswordResetOTP

logger = logging.getLogger("Cleaner")


def removeExpiredTokens(session: Session) -> int:
    currentTime = datetime.datetime.now(datetime.timezone.utc)
    result = session.execute(
        delete(AccessToken).where(AccessToken.expires_at < currentTime)
    )
    session.commit()
    deletedCount = result.rowcount
    logger.info(f"Removed {deletedCount} tokens from {AccessToken.__tablename__} table")
    return deletedCount


def removeExpiredOTPs(resetOTP: PasswordResetOTP) -> int:
    deletedCount = resetOTP.sweep()
    logger.info(f"Removed {deletedCount} expired password reset OTPs")
    return deletedCount


def main(resetOTP: PasswordResetOTP | None = None):
    try:
        with sessionMaker() as session:
            removeExpiredTokens(session)
        if resetOTP is not None:
            removeExpiredOTPs(resetOTP)
    except Exception:
        logger.exception("cleaner.py failed")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
