from extensions import db

INSTANCE_SCHEDULED = "SCHEDULED"
INSTANCE_RUNNING = "RUNNING"
INSTANCE_STOPPED = "STOPPED"


class JudgeInstance(db.Model):
    """Judge0 endpoint reserved for one coding test's time window."""

    __tablename__ = "judge_instances"

    instance_id = db.Column(db.Integer, primary_key=True)

    test_id = db.Column(
        db.Integer,
        db.ForeignKey("coding_tests.test_id"),
        unique=True,
        nullable=False
    )

    endpoint = db.Column(db.String(255), nullable=False)
    status = db.Column(db.String(20), nullable=False, default=INSTANCE_SCHEDULED)
    scheduled_start = db.Column(db.DateTime, nullable=False)
    scheduled_stop = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    def status_at(self, now):
        if now < self.scheduled_start:
            return INSTANCE_SCHEDULED
        if now > self.scheduled_stop:
            return INSTANCE_STOPPED
        return INSTANCE_RUNNING

    def to_dict(self):
        return {
            "id": self.instance_id,
            "testId": self.test_id,
            "endpoint": self.endpoint,
            "status": self.status,
            "scheduledStart": self.scheduled_start.isoformat(),
            "scheduledStop": self.scheduled_stop.isoformat(),
        }

    def __repr__(self):
        return f"<JudgeInstance test={self.test_id} {self.status}>"
