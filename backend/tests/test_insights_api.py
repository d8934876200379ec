import sys
import unittest
from datetime import date
from pathlib import Path

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


# Ensure `backend/` and the repo root are on sys.path so `import app...` and `import offer_engine` work
REPO_ROOT = Path(__file__).resolve().parents[2]
BACKEND_DIR = REPO_ROOT / "backend"
sys.path.insert(0, str(REPO_ROOT))
sys.path.insert(0, str(BACKEND_DIR))

from app.db.db import Base  # noqa: E402
from app.dependencies.db import get_db  # noqa: E402
from app.main import app  # noqa: E402
from app.models.offer import OfferRecord, OfferType  # noqa: E402
from app.models.person import Person  # noqa: F401,E402
from app.models.transaction import TransactionRecord  # noqa: E402


class InsightsApiTests(unittest.TestCase):
    """
    Two online offers that one plan can satisfy: $200 of spending and three
    transactions of at least $50.
    """

    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        self.Session = sessionmaker(bind=engine)

        with self.Session() as db:
            db.add(
                OfferRecord(
                    id=1,
                    name="Online spend bonus",
                    type=OfferType.Spending,
                    start_date=date(2025, 9, 1),
                    end_date=date(2025, 12, 31),
                    spending_target=200,
                    categories=["online"],
                    reward=20,
                )
            )
            db.add(
                OfferRecord(
                    id=2,
                    name="Online transaction bonus",
                    type=OfferType.Transactions,
                    start_date=date(2025, 9, 1),
                    end_date=date(2025, 12, 31),
                    transaction_target=3,
                    min_transaction=50,
                    categories=["online"],
                    reward=15,
                )
            )
            db.commit()

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()

    def _add_transaction(self, day, amount, categories, merchant=""):
        with self.Session() as db:
            record = TransactionRecord(
                date=day, amount=amount, categories=categories, merchant=merchant
            )
            db.add(record)
            db.commit()
            return record.id

    def test_recommendations_combine_overlapping_offers(self):
        resp = self.client.get("/api/v1/recommendations", params={"today": "2025-10-01"})
        self.assertEqual(resp.status_code, 200)
        data = resp.json()

        self.assertEqual(len(data["recommendations"]), 1)
        rec = data["recommendations"][0]
        self.assertEqual(rec["offer_ids"], [1, 2])
        self.assertEqual(rec["priority"], "high")
        self.assertEqual(rec["offer_count"], 2)
        self.assertEqual(rec["plan"]["total_spending"], 200.0)
        self.assertEqual(rec["plan"]["total_transactions"], 3)
        self.assertEqual(rec["savings"]["dollars_saved"], 150.0)
        self.assertEqual(
            rec["summary"],
            "Spend $200.00 across 3 transactions of at least $50.00 each in online",
        )

        self.assertEqual(len(data["overlaps"]), 1)
        self.assertEqual(data["overlaps"][0]["start"], "2025-10-01")

        strategy = data["master_strategy"]
        self.assertEqual([p["kind"] for p in strategy["phases"]], ["overlap"])
        self.assertEqual(strategy["total_potential_reward"], 35.0)

    def test_recommendations_without_active_offers(self):
        resp = self.client.get("/api/v1/recommendations", params={"today": "2026-02-01"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(
            resp.json(),
            {"recommendations": [], "overlaps": [], "master_strategy": None},
        )

    def test_offer_progress(self):
        self._add_transaction(date(2025, 10, 2), 65, ["online"])
        self._add_transaction(date(2025, 10, 3), 12, ["travel"])

        resp = self.client.get("/api/v1/offers/1/progress", params={"today": "2025-10-05"})
        self.assertEqual(resp.status_code, 200)
        progress = resp.json()["progress"]
        self.assertEqual(progress["status"], "active")
        self.assertEqual(progress["total_spending"], 65.0)
        self.assertEqual(progress["total_transactions"], 1)
        self.assertFalse(progress["completed"])

    def test_progress_lists_every_offer(self):
        resp = self.client.get("/api/v1/progress", params={"today": "2025-10-05"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([p["offer_id"] for p in resp.json()["progress"]], [1, 2])

    def test_dashboard_order(self):
        with self.Session() as db:
            db.add(
                OfferRecord(
                    id=3,
                    name="Spring promo",
                    start_date=date(2025, 3, 1),
                    end_date=date(2025, 3, 31),
                    spending_target=100,
                )
            )
            db.add(
                OfferRecord(
                    id=4,
                    name="Holiday promo",
                    start_date=date(2025, 11, 1),
                    end_date=date(2025, 12, 15),
                    spending_target=100,
                )
            )
            db.commit()

        resp = self.client.get("/api/v1/dashboard", params={"today": "2025-10-01"})
        self.assertEqual(resp.status_code, 200)
        rows = resp.json()["offers"]
        self.assertEqual([r["priority_bucket"] for r in rows], [1, 1, 4, 5])
        self.assertEqual([r["offer"]["id"] for r in rows][2:], [3, 4])
        self.assertTrue(rows[2]["expired"])
        self.assertTrue(rows[3]["not_started"])

    def test_matching_offers_respect_minimum(self):
        small = self._add_transaction(date(2025, 10, 2), 30, ["online"])
        large = self._add_transaction(date(2025, 10, 2), 80, ["online", "books"])

        small_matches = self.client.get(f"/api/v1/transactions/{small}/matching-offers").json()["offers"]
        large_matches = self.client.get(f"/api/v1/transactions/{large}/matching-offers").json()["offers"]
        self.assertEqual([o["id"] for o in small_matches], [1])
        self.assertEqual([o["id"] for o in large_matches], [1, 2])

    def test_offer_transactions_in_sub_window(self):
        self._add_transaction(date(2025, 9, 10), 60, ["online"])
        self._add_transaction(date(2025, 10, 10), 70, ["online"])

        resp = self.client.get("/api/v1/offers/1/transactions", params={"start": "2025-10-01"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual([t["date"] for t in resp.json()["transactions"]], ["2025-10-10"])

    def test_offer_transactions_reversed_window_returns_400(self):
        resp = self.client.get(
            "/api/v1/offers/1/transactions",
            params={"start": "2025-12-01", "end": "2025-11-01"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"]["error"]["code"], "VALIDATION_ERROR")

    def test_malformed_stored_offer_returns_422(self):
        with self.Session() as db:
            db.add(
                OfferRecord(
                    id=3,
                    name="Broken tiers",
                    start_date=date(2025, 9, 1),
                    end_date=date(2025, 12, 31),
                    tiers=[{"threshold": 100}],
                )
            )
            db.commit()

        resp = self.client.get("/api/v1/recommendations", params={"today": "2025-10-01"})
        self.assertEqual(resp.status_code, 422)
        error = resp.json()["detail"]["error"]
        self.assertEqual(error["code"], "MALFORMED_RECORD")
        self.assertEqual(error["details"]["field"], "tiers")

    def test_merchant_endpoints(self):
        self._add_transaction(date(2025, 10, 1), 10, ["books"], merchant="Bookshop")
        self._add_transaction(date(2025, 10, 2), 12, ["books"], merchant="bookshop")
        self._add_transaction(date(2025, 10, 3), 15, ["gifts"], merchant="Bookshop")

        merchants = self.client.get("/api/v1/merchants").json()["merchants"]
        self.assertEqual(merchants, ["Bookshop"])

        resp = self.client.get("/api/v1/merchants/BOOKSHOP/category")
        self.assertEqual(resp.json(), {"merchant": "BOOKSHOP", "category": "books"})

        resp = self.client.get("/api/v1/merchants/Unknown/category")
        self.assertIsNone(resp.json()["category"])


if __name__ == "__main__":
    unittest.main()
