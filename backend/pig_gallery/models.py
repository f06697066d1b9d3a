from sqlalchemy import BigInteger, Column, ForeignKey, Index, Integer, String, Text
from .db import Base


class Pig(Base):
    __tablename__ = "pigs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(20), nullable=False)
    image = Column(Text, nullable=False)  # data:image/...;base64,...
    location = Column(String(100), nullable=False)
    ip = Column(String(64), nullable=False)
    likes = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(BigInteger, nullable=False)  # ms since epoch

    __table_args__ = (
        Index("ix_pigs_created_at", created_at.desc()),
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        # ip stays server-side
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "location": self.location,
            "likes": self.likes,
            "created_at": self.created_at,
        }


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    pig_id = Column(Integer, ForeignKey("pigs.id"), nullable=False)
    content = Column(Text, nullable=False)
    ip = Column(String(64), nullable=False)
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index("ix_comments_pig_created_at", pig_id, created_at.desc()),
        {"sqlite_autoincrement": True},
    )

    def to_dict(self) -> dict:
        return {"id": self.id, "content": self.content, "created_at": self.created_at}


class SubmissionLog(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip = Column(String(64), nullable=False)
    timestamp = Column(BigInteger, nullable=False)

    __table_args__ = (Index("ix_submissions_ip_timestamp", "ip", "timestamp"),)


class CommentSubmissionLog(Base):
    __tablename__ = "comment_submissions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    ip = Column(String(64), nullable=False)
    timestamp = Column(BigInteger, nullable=False)

    __table_args__ = (Index("ix_comment_submissions_ip_timestamp", "ip", "timestamp"),)
