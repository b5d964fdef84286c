import hashlib
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, DateTime, Integer, String, Text, create_engine, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from .models import AnalysisRequest, AnalysisResponse, HistoryEntry


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Viewer(Base):
    __tablename__ = "viewers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    ip_hash: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


class VideoAnalysis(Base):
    __tablename__ = "video_analyses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    platform: Mapped[str] = mapped_column(String(32))
    niche: Mapped[str] = mapped_column(String(255))
    channel_size: Mapped[str] = mapped_column(String(16))
    video_type: Mapped[str] = mapped_column(String(16))
    idea: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    transcript: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    youtube_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    analysis: Mapped[dict] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)


def hash_ip(ip: str) -> str:
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()


class Storage:
    """Viewer counter and analysis history."""

    def __init__(self, database_url: str, echo: bool = False):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        self.engine = create_engine(database_url, echo=echo, pool_pre_ping=True, connect_args=connect_args)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    def init_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def record_viewer(self, ip_hash: str) -> None:
        with self.SessionLocal() as session:
            if session.scalar(select(Viewer.id).where(Viewer.ip_hash == ip_hash)) is not None:
                return
            session.add(Viewer(ip_hash=ip_hash))
            try:
                session.commit()
            except IntegrityError:
                # same viewer inserted concurrently
                session.rollback()

    def viewer_count(self) -> int:
        with self.SessionLocal() as session:
            return int(session.scalar(select(func.count(Viewer.id))) or 0)

    def save_analysis(self, req: AnalysisRequest, analysis: AnalysisResponse) -> int:
        row = VideoAnalysis(
            platform=req.platform,
            niche=req.niche,
            channel_size=req.channelSize,
            video_type=req.videoType,
            idea=req.idea,
            transcript=req.transcript,
            youtube_url=req.youtubeUrl,
            analysis=analysis.model_dump(mode="json"),
        )
        with self.SessionLocal() as session:
            session.add(row)
            session.commit()
            return row.id

    def analysis_history(self, limit: int = 50) -> List[HistoryEntry]:
        stmt = select(VideoAnalysis).order_by(VideoAnalysis.id.desc()).limit(limit)
        with self.SessionLocal() as session:
            return [
                HistoryEntry(
                    id=row.id,
                    platform=row.platform,
                    niche=row.niche,
                    channelSize=row.channel_size,
                    videoType=row.video_type,
                    idea=row.idea,
                    transcript=row.transcript,
                    youtubeUrl=row.youtube_url,
                    analysis=row.analysis,
                    createdAt=row.created_at,
                )
                for row in session.scalars(stmt)
            ]


class StorageUnavailable(Exception):
    pass


class UnavailableStorage:
    """Stand-in used when the database engine cannot be built; every call raises."""

    def __init__(self, reason: str):
        self.reason = reason

    def _fail(self):
        raise StorageUnavailable(f"Storage unavailable: {self.reason}")

    def init_schema(self) -> None:
        self._fail()

    def record_viewer(self, ip_hash: str) -> None:
        self._fail()

    def viewer_count(self) -> int:
        self._fail()

    def save_analysis(self, req: AnalysisRequest, analysis: AnalysisResponse) -> int:
        self._fail()

    def analysis_history(self, limit: int = 50) -> List[HistoryEntry]:
        self._fail()
