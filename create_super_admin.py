import sys

from hrm_api import create_app, echo_super_admin
from hrm_api.common.errors import ConnectionFailure
from hrm_api.extensions import db
from hrm_api.services.provisioning import ensure_super_admin

app = create_app()

with app.app_context():
    db.create_all()
    try:
        result = ensure_super_admin(db.session)
    except ConnectionFailure as e:
        print(f"Error creating super admin: {e.message}", file=sys.stderr)
        sys.exit(1)
    echo_super_admin(result)
