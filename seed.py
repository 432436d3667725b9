"""Seed script — populates the database with demo packages and service types.

Usage:
    flask shell
    >>> exec(open('seed.py').read())

Or run directly:
    python seed.py
"""

from app import create_app
from app.extensions import db
from app.domain.models import Package, ServiceType


def seed():
    """Insert demo packages and service types."""
    app = create_app("development")

    with app.app_context():
        db.create_all()

        # Check if already seeded
        if Package.query.first():
            print("⚠ Seed data already exists — skipping.")
            return

        # -- Packages --
        db.session.add_all([
            Package(name="Trial", description="Try the platform with one credit",
                    credits=1, duration_days=7, price=0),
            Package(name="Starter", description="Social media designs and short reels",
                    credits=30, duration_days=30, price=99),
            Package(name="Growth", description="Designs, reels, logos and voice over",
                    credits=120, duration_days=30, price=299),
        ])

        # -- Service types --
        social_media = ServiceType(
            name="Social Media Design",
            description="A single post or story design",
            credit_cost=5,
            max_free_revisions=1,
            paid_revision_cost=2,
            attributes=[
                {"key": "platform", "question": "Which platform?", "type": "select",
                 "required": True, "options": ["Instagram", "Facebook", "LinkedIn"]},
                {"key": "brief", "question": "Describe the design", "type": "textarea",
                 "required": True},
            ],
        )
        reel = ServiceType(
            name="Reel Video",
            description="5-10 seconds base, +5 credits per additional 10 seconds",
            credit_cost=10,
            max_free_revisions=1,
            paid_revision_cost=2,
            attributes=[
                {"key": "extra_segments", "question": "Additional 10-second segments",
                 "type": "select", "options": ["0", "1", "2", "3"], "credit_impact": 5},
                {"key": "voice_over", "question": "Add a voice over?", "type": "select",
                 "options_with_cost": [{"value": "No", "credit_cost": 0},
                                       {"value": "Yes", "credit_cost": 5}]},
            ],
        )
        digital_menu = ServiceType(
            name="Digital Menu",
            description="50 credits for the first 20 products, +1 per additional product",
            credit_cost=50,
            max_free_revisions=1,
            paid_revision_cost=2,
            reset_free_revisions_on_paid=False,
            attributes=[
                {"key": "products", "question": "Number of products", "type": "number",
                 "required": True, "min": 1, "credit_impact": 1, "included_quantity": 20},
            ],
        )
        logo = ServiceType(
            name="Logo Design",
            description="Brand logo with three initial concepts",
            credit_cost=50,
            max_free_revisions=3,
            paid_revision_cost=5,
            priority_cost_high=10,
            attributes=[
                {"key": "formats", "question": "Deliverable formats", "type": "multiselect",
                 "options_with_cost": [{"value": "PNG", "credit_cost": 0},
                                       {"value": "SVG", "credit_cost": 2},
                                       {"value": "Brand book", "credit_cost": 15}]},
            ],
        )
        db.session.add_all([social_media, reel, digital_menu, logo])

        db.session.commit()
        print("✓ Seed data inserted successfully.")


if __name__ == "__main__":
    seed()
