from datetime import datetime

from hrm_api.extensions import db


# Department, per tenant
class Department(db.Model):
    __tablename__ = "departments"

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(
        db.Integer,
        db.ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(16), default="active", nullable=False)  # active/inactive
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, onupdate=datetime.utcnow)

    __table_args__ = (
        db.UniqueConstraint("tenant_id", "code", name="uq_department_tenant_code"),
    )

    tenant = db.relationship(
        "Tenant", backref=db.backref("departments", lazy="dynamic")
    )
