import sys
import unittest
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
from app.models.person import Person  # noqa: E402
from app.models.offer import OfferRecord  # noqa: E402
from app.models.transaction import TransactionRecord  # noqa: F401,E402


SPEND_OFFER = {
    "name": "Online spend bonus",
    "type": "spending",
    "startDate": "2025-09-01",
    "endDate": "2025-12-31",
    "spendingTarget": 200,
    "categories": ["Online"],
    "reward": 20,
}


class OfferTrackerApiTests(unittest.TestCase):
    def setUp(self):
        engine = create_engine(
            "sqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        Base.metadata.create_all(bind=engine)
        self.Session = sessionmaker(bind=engine)

        with self.Session() as db:
            db.add(Person(id=1, name="Alex"))
            db.add(Person(id=2, name="Sam"))
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

    def test_create_and_get_offer(self):
        resp = self.client.post("/api/v1/offers", json={"offer": SPEND_OFFER})
        self.assertEqual(resp.status_code, 201)
        offer = resp.json()["offer"]
        self.assertEqual(offer["type"], "spending")
        self.assertEqual(offer["spending_target"], 200.0)
        self.assertEqual(offer["categories"], ["online"])
        self.assertIsNone(offer["person_id"])

        resp = self.client.get(f"/api/v1/offers/{offer['id']}")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["offer"]["name"], "Online spend bonus")

    def test_update_and_delete_offer(self):
        offer_id = self.client.post("/api/v1/offers", json={"offer": SPEND_OFFER}).json()["offer"]["id"]

        changed = dict(SPEND_OFFER, spendingTarget=300, monthlyTracking=True)
        resp = self.client.put(f"/api/v1/offers/{offer_id}", json={"offer": changed})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["offer"]["spending_target"], 300.0)
        self.assertTrue(resp.json()["offer"]["monthly_tracking"])

        resp = self.client.delete(f"/api/v1/offers/{offer_id}")
        self.assertEqual(resp.status_code, 204)
        self.assertEqual(self.client.get(f"/api/v1/offers/{offer_id}").status_code, 404)

    def test_missing_offer_returns_404(self):
        resp = self.client.get("/api/v1/offers/999")
        self.assertEqual(resp.status_code, 404)
        body = resp.json()
        self.assertEqual(body["detail"]["error"]["code"], "NOT_FOUND")
        self.assertEqual(body["detail"]["error"]["details"], {"id": 999})

    def test_reversed_window_returns_400(self):
        bad = dict(SPEND_OFFER, startDate="2025-12-31", endDate="2025-09-01")
        resp = self.client.post("/api/v1/offers", json={"offer": bad})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

    def test_non_positive_target_returns_400(self):
        bad = dict(SPEND_OFFER, spendingTarget=0)
        resp = self.client.post("/api/v1/offers", json={"offer": bad})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

    def test_offers_are_scoped_to_person_header(self):
        resp = self.client.post("/api/v1/offers", json={"offer": SPEND_OFFER}, headers={"x-person-id": "p_1"})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["offer"]["person_id"], 1)

        mine = self.client.get("/api/v1/offers", headers={"x-person-id": "1"}).json()["offers"]
        theirs = self.client.get("/api/v1/offers", headers={"x-person-id": "2"}).json()["offers"]
        everyone = self.client.get("/api/v1/offers").json()["offers"]
        self.assertEqual(len(mine), 1)
        self.assertEqual(theirs, [])
        self.assertEqual(len(everyone), 1)

    def test_query_parameter_overrides_header(self):
        self.client.post("/api/v1/offers", json={"offer": SPEND_OFFER}, headers={"x-person-id": "1"})

        resp = self.client.get("/api/v1/offers", params={"person_id": 2}, headers={"x-person-id": "1"})
        self.assertEqual(resp.json()["offers"], [])

    def test_invalid_person_header_returns_400(self):
        resp = self.client.get("/api/v1/offers", headers={"x-person-id": "alex"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["detail"]["error"]["code"], "VALIDATION_ERROR")

    def test_unknown_person_returns_404(self):
        resp = self.client.post("/api/v1/offers", json={"offer": SPEND_OFFER}, headers={"x-person-id": "42"})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()["detail"]["error"]["message"], "Person not found.")

    def test_transaction_crud_and_sorting(self):
        for day, amount in (("2025-09-20", 10), ("2025-09-05", 25.5), ("2025-10-01", 40)):
            resp = self.client.post(
                "/api/v1/transactions",
                json={"transaction": {"date": day, "amount": amount, "merchant": " Bookshop ", "categories": ["Books"]}},
            )
            self.assertEqual(resp.status_code, 201)

        newest_first = self.client.get("/api/v1/transactions").json()["transactions"]
        oldest_first = self.client.get("/api/v1/transactions", params={"sort": "date_asc"}).json()["transactions"]
        self.assertEqual([t["date"] for t in newest_first], ["2025-10-01", "2025-09-20", "2025-09-05"])
        self.assertEqual([t["date"] for t in oldest_first], ["2025-09-05", "2025-09-20", "2025-10-01"])
        self.assertEqual(oldest_first[0]["amount"], 25.5)
        self.assertEqual(oldest_first[0]["merchant"], "Bookshop")
        self.assertEqual(oldest_first[0]["categories"], ["books"])

        txn_id = oldest_first[0]["id"]
        resp = self.client.put(
            f"/api/v1/transactions/{txn_id}",
            json={"transaction": {"date": "2025-09-06", "amount": 30, "categories": ["online"]}},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["transaction"]["amount"], 30.0)

        self.assertEqual(self.client.delete(f"/api/v1/transactions/{txn_id}").status_code, 204)
        self.assertEqual(len(self.client.get("/api/v1/transactions").json()["transactions"]), 2)

    def test_non_positive_amount_returns_400(self):
        resp = self.client.post("/api/v1/transactions", json={"transaction": {"amount": -5}})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"]["code"], "VALIDATION_ERROR")

    def test_people_lifecycle(self):
        resp = self.client.post("/api/v1/people", json={"name": "  Jordan "})
        self.assertEqual(resp.status_code, 201)
        person = resp.json()["person"]
        self.assertEqual(person["name"], "Jordan")

        self.client.post("/api/v1/offers", json={"offer": SPEND_OFFER}, headers={"x-person-id": str(person["id"])})
        self.assertEqual(self.client.delete(f"/api/v1/people/{person['id']}").status_code, 204)
        self.assertEqual(self.client.get(f"/api/v1/people/{person['id']}").status_code, 404)

        # the person's offers went with them
        with self.Session() as db:
            self.assertEqual(db.query(OfferRecord).count(), 0)

    def test_blank_person_name_returns_400(self):
        resp = self.client.post("/api/v1/people", json={"name": "   "})
        self.assertEqual(resp.status_code, 400)


if __name__ == "__main__":
    unittest.main()
