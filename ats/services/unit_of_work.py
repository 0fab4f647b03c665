"""Transaction boundary shared by every mutating service call."""

from contextlib import contextmanager

from flask import current_app
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrentModification, DuplicateAction, NotFound, PipelineError
from ..events import publish
from ..extensions import db


@contextmanager
def transaction(duplicate_message="Duplicate action"):
    """Commit the session once at the end, or roll it back completely.

    Yields a list the caller appends staged domain events to; they are
    published only after the commit succeeded.
    """
    events = []
    try:
        yield events
        db.session.commit()
    except StaleDataError as e:
        db.session.rollback()
        current_app.logger.warning("Stale write rejected: %s", e)
        raise ConcurrentModification("The record was modified by another request; reload and retry") from e
    except IntegrityError as e:
        db.session.rollback()
        current_app.logger.warning("Uniqueness violation: %s", e.orig)
        raise DuplicateAction(duplicate_message) from e
    except PipelineError as e:
        db.session.rollback()
        current_app.logger.warning("Request rejected (%s): %s", e.code, e.message)
        raise
    except Exception:
        db.session.rollback()
        raise

    for event in events:
        publish(event)


def load(model, ident, lock=False, label=None):
    """Fetch by primary key or raise NotFound. ``lock`` reads FOR UPDATE."""
    obj = None
    if ident is not None:
        if lock:
            obj = db.session.get(model, ident, with_for_update=True, populate_existing=True)
        else:
            obj = db.session.get(model, ident)
    if obj is None:
        raise NotFound(f"{label or model.__name__} {ident} not found")
    return obj
