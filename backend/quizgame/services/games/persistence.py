"""SQL-backed save/load of game sessions."""

import json
import logging
import time
from contextlib import contextmanager
from typing import List

from flask import current_app, has_app_context

from quizgame import db
from quizgame.models import GameSessionRecord
from .session import GameSession

logger = logging.getLogger(__name__)


@contextmanager
def app_scope(app):
    """Reuse the current app context for ``app`` or push one (timer workers)."""
    if has_app_context() and current_app._get_current_object() is app:
        yield
    else:
        with app.app_context():
            yield


class SqlSessionRepository:

    def __init__(self, app):
        self.app = app

    def save(self, session: GameSession) -> None:
        with app_scope(self.app):
            record = db.session.get(GameSessionRecord, session.session_id)
            if record is None:
                record = GameSessionRecord(id=session.session_id)
            record.quiz_id = session.quiz_id
            record.owner_id = session.owner_id
            record.state = session.state.value
            record.question_index = session.question_index
            record.payload = json.dumps(session.to_record())
            record.updated_at = time.time()
            db.session.add(record)
            try:
                db.session.commit()
            except Exception:
                db.session.rollback()
                raise

    def load_all(self) -> List[GameSession]:
        with app_scope(self.app):
            try:
                records = GameSessionRecord.query.order_by(GameSessionRecord.id).all()
            except Exception:
                db.session.rollback()
                raise
            sessions = []
            for record in records:
                try:
                    sessions.append(GameSession.from_record(json.loads(record.payload)))
                except (ValueError, KeyError) as exc:
                    logger.warning(f"[store-restore-skip] session={record.id} reason={exc}")
            return sessions

    def clear(self) -> None:
        with app_scope(self.app):
            GameSessionRecord.query.delete()
            db.session.commit()
