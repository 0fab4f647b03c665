from ..extensions import db
from ..utils.time import utc_now


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=utc_now, server_default=db.func.now(), nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, server_default=db.func.now(), onupdate=utc_now)
