import logging
from datetime import datetime, timezone
from typing import List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from travelhub.config import settings
from travelhub.exceptions import PersistenceError, ShareConflictError, TripAccessError
from travelhub.models import TripShare, User
from travelhub.trips.schemas import ShareStatus, TripShareRequest
from travelhub.trips.service import TripGroupService

logger = logging.getLogger(__name__)

ACTIVE_SHARE_STATUSES = (ShareStatus.PENDING.value, ShareStatus.ACCEPTED.value)

class TripSharingService:
    """Invitations that let other users view or join a trip group"""

    def __init__(self, db: Session):
        self.db = db
        self.trip_service = TripGroupService(db)

    def share_trip(self, owner: User, trip_group_id: str, request: TripShareRequest) -> TripShare:
        """Invite an email address; one active invitation per address, capped per trip"""

        self._require_owner(owner, trip_group_id)

        email = str(request.email).lower()
        if email == owner.email:
            raise ShareConflictError("You cannot share a trip with yourself")

        active_shares = self.db.query(TripShare).filter(
            TripShare.trip_group_id == trip_group_id,
            TripShare.status.in_(ACTIVE_SHARE_STATUSES)
        ).all()

        if any(share.shared_with_email == email for share in active_shares):
            raise ShareConflictError("Trip is already shared with this email")

        if len(active_shares) >= settings.MAX_TRIP_SHARES:
            raise ShareConflictError(f"A trip can be shared with at most {settings.MAX_TRIP_SHARES} people")

        share = TripShare(
            trip_group_id=trip_group_id,
            owner_id=owner.id,
            shared_with_email=email,
            access_level=request.access_level.value,
            status=ShareStatus.PENDING.value
        )

        try:
            self.db.add(share)
            self.db.commit()
            self.db.refresh(share)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[Share Error] trip_group_id={trip_group_id} owner_id={owner.id}: {e}", exc_info=True)
            raise PersistenceError("Failed to share trip")

        logger.info(f"[Trip Shared] trip_group_id={trip_group_id} share_id={share.id} access={share.access_level}")
        return share

    def list_shares(self, owner: User, trip_group_id: str) -> List[TripShare]:
        """Invitations for a trip, newest first"""
        self._require_owner(owner, trip_group_id)
        return self.db.query(TripShare).filter(
            TripShare.trip_group_id == trip_group_id
        ).order_by(TripShare.created_at.desc()).all()

    def remove_share(self, owner: User, trip_group_id: str, share_id: str):
        """Withdraw an invitation"""
        self._require_owner(owner, trip_group_id)

        share = self.db.query(TripShare).filter(
            TripShare.id == share_id,
            TripShare.trip_group_id == trip_group_id
        ).first()
        if not share:
            raise LookupError("Share not found")

        try:
            self.db.delete(share)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[Share Error] share_id={share_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to remove share")

    def list_invitations(self, user: User) -> List[TripShare]:
        """Invitations addressed to the user's email"""
        return self.db.query(TripShare).filter(
            TripShare.shared_with_email == user.email
        ).order_by(TripShare.created_at.desc()).all()

    def respond_to_invitation(self, user: User, share_id: str, accept: bool) -> TripShare:
        """Accept or decline a pending invitation"""

        share = self.db.query(TripShare).filter(
            TripShare.id == share_id,
            TripShare.shared_with_email == user.email
        ).first()
        if not share:
            raise LookupError("Invitation not found")

        if share.status != ShareStatus.PENDING.value:
            raise ValueError(f"Invitation has already been {share.status}")

        share.status = ShareStatus.ACCEPTED.value if accept else ShareStatus.DECLINED.value
        share.responded_at = datetime.now(timezone.utc)

        try:
            self.db.commit()
            self.db.refresh(share)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[Share Error] share_id={share_id}: {e}", exc_info=True)
            raise PersistenceError("Failed to update invitation")

        return share

    def _require_owner(self, user: User, trip_group_id: str):
        # Invitees learn they lack rights; strangers only see "not found"
        if self.trip_service.is_owner(user.id, trip_group_id):
            return
        self.trip_service.resolve_access(user, trip_group_id)
        raise TripAccessError("Only the trip owner can manage sharing")
