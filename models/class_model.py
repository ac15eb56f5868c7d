from extensions import db


class Class(db.Model):
    __tablename__ = "classes"

    class_id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    description = db.Column(db.Text, nullable=True)
    join_code = db.Column(db.String(12), unique=True, nullable=False)

    teacher_id = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=False
    )
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    teacher = db.relationship("User", foreign_keys=[teacher_id], lazy=True)
    enrollments = db.relationship(
        "ClassStudent", backref="class_", lazy=True, cascade="all, delete"
    )
    assignments = db.relationship(
        "Assignment", backref="class_", lazy=True, cascade="all, delete"
    )
    tests = db.relationship(
        "CodingTest", backref="class_", lazy=True, cascade="all, delete"
    )

    def has_student(self, user_id):
        return any(e.user_id == user_id for e in self.enrollments)

    def __repr__(self):
        return f"<Class {self.name}>"


class ClassStudent(db.Model):
    __tablename__ = "class_students"

    id = db.Column(db.Integer, primary_key=True)

    class_id = db.Column(
        db.Integer,
        db.ForeignKey("classes.class_id"),
        nullable=False
    )

    user_id = db.Column(
        db.Integer,
        db.ForeignKey("users.user_id"),
        nullable=False
    )

    joined_at = db.Column(db.DateTime, server_default=db.func.now())

    student = db.relationship("User", lazy=True)

    __table_args__ = (
        db.UniqueConstraint("class_id", "user_id", name="unique_class_student"),
    )

    def __repr__(self):
        return f"<ClassStudent class={self.class_id} user={self.user_id}>"
