#!/usr/bin/env python3
"""Create the booking tables, optionally with a demo provider.

Usage: python scripts/init_db.py [--with-demo]
"""
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from beautybook import create_app
from beautybook.extensions import db
from beautybook.models import BusinessHours, CancellationPolicy, Provider
from beautybook.scheduling.hours import DEFAULT_BUSINESS_HOURS
from beautybook.timeutils import parse_time_of_day


def seed_demo_provider():
    if Provider.query.first():
        print("Providers already exist, skipping demo data")
        return

    provider = Provider(name="Demo Studio", timezone="America/New_York")
    db.session.add(provider)
    db.session.flush()

    for day, (is_open, open_time, close_time) in DEFAULT_BUSINESS_HOURS.items():
        db.session.add(BusinessHours(
            provider_id=provider.provider_id,
            day_of_week=day,
            is_open=is_open,
            open_time=parse_time_of_day(open_time) if is_open else None,
            close_time=parse_time_of_day(close_time) if is_open else None,
        ))
    db.session.add(CancellationPolicy(
        provider_id=provider.provider_id,
        is_enabled=True,
        period_days=30,
        max_cancellations=3,
        no_show_multiplier=2.0,
        block_duration_days=7,
    ))
    db.session.commit()
    print(f"Created demo provider {provider.provider_id}")


def init_database(with_demo=False):
    app = create_app()
    with app.app_context():
        db.create_all()
        print("Database tables initialized")
        if with_demo:
            seed_demo_provider()


if __name__ == "__main__":
    init_database(with_demo="--with-demo" in sys.argv[1:])
