from extensions import db


class Assignment(db.Model):
    __tablename__ = "assignments"

    assignment_id = db.Column(db.Integer, primary_key=True)

    class_id = db.Column(
        db.Integer,
        db.ForeignKey("classes.class_id"),
        nullable=False
    )

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    assign_date = db.Column(db.DateTime, server_default=db.func.now())
    due_date = db.Column(db.DateTime, nullable=True)

    problems = db.relationship(
        "Problem", backref="assignment", lazy=True, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Assignment {self.title}>"


class Problem(db.Model):
    __tablename__ = "problems"

    problem_id = db.Column(db.Integer, primary_key=True)

    assignment_id = db.Column(
        db.Integer,
        db.ForeignKey("assignments.assignment_id"),
        nullable=False
    )

    title = db.Column(db.String(200), nullable=False)
    url = db.Column(db.String(500), nullable=False)
    platform = db.Column(db.String(20), nullable=False)  # hackerrank | leetcode | other
    difficulty = db.Column(db.String(20), nullable=True)

    submissions = db.relationship(
        "Submission", backref="problem", lazy=True, cascade="all, delete"
    )

    def to_dict(self):
        return {
            "id": self.problem_id,
            "title": self.title,
            "url": self.url,
            "platform": self.platform,
            "difficulty": self.difficulty,
        }

    def __repr__(self):
        return f"<Problem {self.title}>"
