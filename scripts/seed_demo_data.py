#!/usr/bin/env python3
"""
Dairy Sustainability Reporting Portal — Demo Data Seed Script.

Creates the default accounts (admin / john / jane) and, with
``--workflow``, a published template, an approved upload from john and
the first admin draft of its review thread.

Usage:
    python scripts/seed_demo_data.py
    python scripts/seed_demo_data.py --workflow
"""

import argparse
import io
import sys

from werkzeug.datastructures import FileStorage

sys.path.insert(0, ".")

from dairy_portal import create_app
from dairy_portal.models import db
from dairy_portal.models.upload import UPLOAD_APPROVED
from dairy_portal.services import draft_service, template_service, upload_service, user_service

FINANCIAL_YEAR = "2024-25"


def _demo_file(name: str, text: str) -> FileStorage:
    return FileStorage(
        stream=io.BytesIO(text.encode("utf-8")),
        filename=name,
        content_type="text/csv",
    )


def seed_workflow():
    admin = user_service.get_user_by_username("admin")
    john = user_service.get_user_by_username("john")

    template = template_service.create_template(
        "ESG Sustainability Report", FINANCIAL_YEAR,
        _demo_file("esg_report_template.csv", "metric,value\nmilk_collected_litres,\n"),
        admin, description="Annual ESG disclosure for member dairies",
    )
    print(f"   ✅ Template #{template.id}: {template.name} ({FINANCIAL_YEAR})")

    upload = upload_service.create_upload(
        john,
        _demo_file("john_esg_report.csv", "metric,value\nmilk_collected_litres,125000\n"),
        template_id=template.id, description="First submission",
    )
    upload_service.set_status(upload.id, UPLOAD_APPROVED, admin)
    print(f"   ✅ Upload #{upload.id} by {john.username} approved")

    draft = draft_service.create_admin_draft(
        upload.id, admin,
        _demo_file("john_esg_report_review_v1.csv", "metric,value,comment\nmilk_collected_litres,125000,check source\n"),
        comments="Please confirm the collection figure.",
    )
    print(f"   ✅ Draft #{draft.draft_number} sent to {john.username}")


def main():
    parser = argparse.ArgumentParser(description="Seed demo data")
    parser.add_argument("--workflow", action="store_true",
                        help="also create a template, an approved upload and a first draft")
    args = parser.parse_args()

    app = create_app()
    print(f"🎯 DB: {app.config['SQLALCHEMY_DATABASE_URI']}\n")
    with app.app_context():
        db.create_all()
        created = user_service.seed_default_users()
        print(f"   ✅ {created} user account(s) created")
        if args.workflow:
            seed_workflow()
    print("\n🎉 DEMO DATA SEED COMPLETE")


if __name__ == "__main__":
    main()
