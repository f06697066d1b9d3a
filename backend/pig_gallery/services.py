"""
Gallery services: submitting drawings, querying them and engaging with them.

Each service works on the session it is given; nothing here holds global state.
"""

from typing import Any, Dict, List, Optional, Tuple

import structlog
from sqlalchemy import delete, desc, func, select, update
from sqlalchemy.orm import Session

from .errors import InvalidImageFormat, InvalidInput, NameTooLong, NotFound, RateLimited, TooLong
from .geo import GeoResolver
from .models import Comment, CommentSubmissionLog, Pig, SubmissionLog
from .ratelimit import Clock, RateLimiter, now_ms

logger = structlog.get_logger()

MAX_NAME_LENGTH = 20
MAX_COMMENT_LENGTH = 200
IMAGE_DATA_PREFIX = "data:image/"

SORT_LIKES = "likes"
SORT_COMMENTS = "comments"


def comment_count_column():
    return (
        select(func.count(Comment.id))
        .where(Comment.pig_id == Pig.id)
        .correlate(Pig)
        .scalar_subquery()
        .label("comment_count")
    )


class SubmissionService:
    """Validates and stores new drawings."""

    def __init__(
        self,
        db: Session,
        geo: GeoResolver,
        limit: int = 3,
        window_ms: int = 10 * 60 * 1000,
        clock: Clock = now_ms,
    ):
        self.db = db
        self.geo = geo
        self.limit = limit
        self.window_ms = window_ms
        self.clock = clock
        self.limiter = RateLimiter(db, SubmissionLog, clock=clock)

    def submit(self, name: Optional[str], image: Optional[str], client_address: str) -> Pig:
        if not name or not image:
            raise InvalidInput()
        if len(name) > MAX_NAME_LENGTH:
            raise NameTooLong()
        if not image.startswith(IMAGE_DATA_PREFIX):
            raise InvalidImageFormat()
        if not self.limiter.check(client_address, self.window_ms, self.limit):
            logger.info("rate_limited", action="submit", ip=client_address)
            window_minutes = self.window_ms // 60000
            raise RateLimited(
                f"Too many submissions, at most {self.limit} pigs every "
                f"{window_minutes} minutes. Please try again later"
            )

        location = self.geo.resolve(client_address)
        pig = Pig(
            name=name,
            image=image,
            location=location,
            ip=client_address,
            likes=0,
            created_at=self.clock(),
        )
        self.db.add(pig)
        self.db.commit()
        self.db.refresh(pig)

        self.limiter.record(client_address)
        logger.info("pig_submitted", id=pig.id, name=name, location=location)
        return pig


class QueryService:
    """Read side of the gallery."""

    def __init__(self, db: Session):
        self.db = db

    def list_pigs(
        self,
        page: int = 0,
        limit: int = 20,
        search: Optional[str] = None,
        sort: Optional[str] = None,
    ) -> Tuple[int, List[Dict[str, Any]]]:
        """Return ``(total, items)`` for one page.

        ``total`` counts the filtered rows. Unknown sort keys fall back to
        recency; ties are broken by newest id.
        """
        comment_count = comment_count_column()
        stmt = select(
            Pig.id,
            Pig.name,
            Pig.image,
            Pig.location,
            Pig.likes,
            Pig.created_at,
            comment_count,
        )
        count_stmt = select(func.count(Pig.id))

        search = (search or "").strip()
        if search:
            condition = Pig.name.icontains(search, autoescape=True)
            stmt = stmt.where(condition)
            count_stmt = count_stmt.where(condition)

        if sort == SORT_LIKES:
            order = desc(Pig.likes)
        elif sort == SORT_COMMENTS:
            order = desc(comment_count)
        else:
            order = desc(Pig.created_at)

        total = self.db.execute(count_stmt).scalar_one()
        rows = self.db.execute(
            stmt.order_by(order, desc(Pig.id)).offset(page * limit).limit(limit)
        ).mappings()
        return total, [dict(row) for row in rows]

    def get_pig(self, pig_id: int) -> Dict[str, Any]:
        pig = self.db.get(Pig, pig_id)
        if not pig:
            raise NotFound()
        return pig.to_dict()

    def stats(self) -> Dict[str, int]:
        row = self.db.execute(
            select(
                func.count(Pig.id),
                func.coalesce(func.sum(Pig.likes), 0),
                func.count(Pig.location.distinct()),
            )
        ).one()
        return {"total": row[0], "totalLikes": int(row[1]), "countries": row[2]}


class EngagementService:
    """Likes and comments."""

    def __init__(
        self,
        db: Session,
        limit: int = 5,
        window_ms: int = 10 * 60 * 1000,
        clock: Clock = now_ms,
    ):
        self.db = db
        self.limit = limit
        self.window_ms = window_ms
        self.clock = clock
        self.limiter = RateLimiter(db, CommentSubmissionLog, clock=clock)

    def like(self, pig_id: int) -> int:
        # The increment runs in SQL so concurrent likes are never lost.
        # Liking a missing id updates nothing and is reported by the read.
        self.db.execute(update(Pig).where(Pig.id == pig_id).values(likes=Pig.likes + 1))
        self.db.commit()

        likes = self.db.execute(select(Pig.likes).where(Pig.id == pig_id)).scalar_one_or_none()
        if likes is None:
            raise NotFound()
        return likes

    def list_comments(
        self, pig_id: int, page: int = 0, limit: int = 20
    ) -> Tuple[int, List[Dict[str, Any]]]:
        total = self.db.execute(
            select(func.count(Comment.id)).where(Comment.pig_id == pig_id)
        ).scalar_one()
        rows = self.db.execute(
            select(Comment.id, Comment.content, Comment.created_at)
            .where(Comment.pig_id == pig_id)
            .order_by(desc(Comment.created_at), desc(Comment.id))
            .offset(page * limit)
            .limit(limit)
        ).mappings()
        return total, [dict(row) for row in rows]

    def add_comment(self, pig_id: int, content: Any, client_address: str) -> Comment:
        exists = self.db.execute(select(Pig.id).where(Pig.id == pig_id)).scalar_one_or_none()
        if exists is None:
            raise NotFound()

        if not isinstance(content, str) or not content.strip():
            raise InvalidInput("Comment content must not be empty")
        trimmed = content.strip()
        if len(trimmed) > MAX_COMMENT_LENGTH:
            raise TooLong()

        if not self.limiter.check(client_address, self.window_ms, self.limit):
            logger.info("rate_limited", action="comment", ip=client_address)
            raise RateLimited(
                f"Too many comments, at most {self.limit} every "
                f"{self.window_ms // 60000} minutes. Please try again later"
            )

        comment = Comment(pig_id=pig_id, content=trimmed, ip=client_address, created_at=self.clock())
        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)

        self.limiter.record(client_address)
        logger.info("comment_added", id=comment.id, pig_id=pig_id)
        return comment


def delete_pig(db: Session, pig_id: int) -> None:
    """Delete a drawing together with its comments."""
    pig = db.get(Pig, pig_id)
    if not pig:
        raise NotFound()
    db.execute(delete(Comment).where(Comment.pig_id == pig_id))
    db.delete(pig)
    db.commit()
    logger.info("pig_deleted", id=pig_id)
