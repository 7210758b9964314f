import sys

from hrm_api import create_app, echo_seed_result
from hrm_api.common.errors import ConnectionFailure
from hrm_api.extensions import db
from hrm_api.services.provisioning import seed_sample_org, SAMPLE_ADMIN_EMAIL, SAMPLE_ADMIN_PASSWORD

app = create_app()

with app.app_context():
    db.create_all()
    try:
        result = seed_sample_org(db.session)
    except ConnectionFailure as e:
        print(f"Error seeding data: {e.message}", file=sys.stderr)
        sys.exit(1)
    echo_seed_result(result, SAMPLE_ADMIN_EMAIL, SAMPLE_ADMIN_PASSWORD)
