"""
Room and membership service
Creates rooms, joins members and answers "who is in this room" questions
for the quiz core.
"""
import logging
import secrets
import string
import uuid
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from watchparty.config import settings
from watchparty.database import atomic
from watchparty.models import Room, RoomMember
from watchparty.models.room import ROOM_VOTING
from watchparty.utils.errors import Forbidden, NotFound, StorageError
from watchparty.utils.notifier import InvalidationTopic, invalidation_notifier
from watchparty.utils.validation import validate_user_name

logger = logging.getLogger(__name__)

CODE_ALPHABET = string.ascii_uppercase + string.digits
MAX_CODE_ATTEMPTS = 10


def generate_room_code(length: int = None) -> str:
    """Random uppercase room code"""
    length = length or settings.ROOM_CODE_LENGTH
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_room_code(code: Optional[str]) -> str:
    """Room codes are case-insensitive; uppercase is canonical"""
    return (code or "").strip().upper()


class RoomService:
    """Service for room lifecycle and membership"""

    def __init__(self, notifier=invalidation_notifier):
        self.notifier = notifier

    def create_room(self, db: Session, host_name: str) -> Dict[str, Any]:
        """
        Create a room in voting status with its host as first member

        Returns:
            Dictionary with room_id, room_code and the generated host user_id
        """
        host_name = validate_user_name(host_name)
        host_id = uuid.uuid4()

        code = generate_room_code()
        attempts = 0
        while db.query(Room.id).filter(Room.code == code).first():
            if attempts >= MAX_CODE_ATTEMPTS:
                logger.error(f"No free room code after {attempts} retries")
                raise StorageError("Failed to generate a unique room code", {"attempts": attempts})
            code = generate_room_code()
            attempts += 1

        with atomic(db, "create_room"):
            room = Room(code=code, host_id=host_id, status=ROOM_VOTING)
            db.add(room)
            db.flush()
            db.add(RoomMember(room_id=room.id, user_id=host_id, user_name=host_name))

        logger.info(f"Room created: {room.id} code={code} host={host_id}")

        return {"room_id": room.id, "room_code": code, "user_id": host_id}

    def join_room(self, db: Session, user_name: str, room_code: str) -> Dict[str, Any]:
        """
        Join a room by its shareable code

        Raises:
            NotFound: no room with that code
        """
        user_name = validate_user_name(user_name)
        code = normalize_room_code(room_code)

        room = db.query(Room).filter(Room.code == code).first()
        if not room:
            logger.warning(f"Join rejected, unknown room code: {code}")
            raise NotFound("Room not found", {"resource": "room", "code": code})

        user_id = uuid.uuid4()
        with atomic(db, "join_room"):
            db.add(RoomMember(room_id=room.id, user_id=user_id, user_name=user_name))

        logger.info(f"User {user_id} joined room {room.id}")
        self.notifier.invalidate(room.id, InvalidationTopic.ROOM_MEMBERS)

        return {"room_id": room.id, "room_code": room.code, "user_id": user_id}

    def get_room(self, db: Session, room_id: UUID) -> Room:
        room = db.query(Room).filter(Room.id == room_id).first()
        if not room:
            raise NotFound("Room not found", {"resource": "room", "room_id": str(room_id)})
        return room

    def get_members(self, db: Session, room: Room, include_host: bool = True) -> List[RoomMember]:
        """Members in join order; ties on joined_at resolved by user id"""
        query = db.query(RoomMember).filter(RoomMember.room_id == room.id)
        if not include_host:
            query = query.filter(RoomMember.user_id != room.host_id)
        return query.order_by(RoomMember.joined_at.asc(), RoomMember.user_id.asc()).all()

    def get_member(self, db: Session, room_id: UUID, user_id: UUID) -> Optional[RoomMember]:
        return db.query(RoomMember).filter(
            RoomMember.room_id == room_id,
            RoomMember.user_id == user_id
        ).first()

    def require_host(self, room: Room, user_id: UUID, action: str) -> None:
        """
        Raises:
            Forbidden: ``user_id`` is not the room's host
        """
        if room.host_id != user_id:
            logger.warning(f"{action} rejected for non-host {user_id} in room {room.id}")
            raise Forbidden(
                "Only the host can do this",
                {"action": action, "room_id": str(room.id)}
            )


# Global instance
room_service = RoomService()
