"""
Command-line interface for the offer tracker.
Transactions live in a CSV ledger, offers in a JSON file of stored records.
"""

import argparse
import csv
import json
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import List

from offer_engine.dates import parse_date
from offer_engine.eligibility import matching_offers_for_transaction
from offer_engine.errors import MalformedRecordError
from offer_engine.models import Offer, Transaction
from offer_engine.needs import describe_plan
from offer_engine.parsing import offer_from_dict, parse_categories, transaction_from_dict
from offer_engine.progress import summarize_offers
from offer_engine.recommender import get_optimal_spending_recommendations


# Default file paths
CSV_PATH = Path("data/transactions.csv")
OFFERS_PATH = Path("data/offers.json")
CSV_HEADERS = ["id", "date", "amount", "merchant", "categories", "description"]

BUCKET_LABELS = {
    1: "Active",
    2: "Active (on track)",
    3: "Completed",
    4: "Missed",
    5: "Upcoming",
}


def ensure_csv_exists(csv_path: Path):
    """Create the CSV file with headers if it doesn't exist."""
    if not csv_path.exists():
        csv_path.parent.mkdir(parents=True, exist_ok=True)
        with open(csv_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(CSV_HEADERS)


def load_transactions(csv_path: Path) -> List[Transaction]:
    """
    Load all transactions from the CSV ledger.

    Returns:
        List of Transaction objects (empty when the ledger does not exist)
    """
    if not csv_path.exists():
        return []

    with open(csv_path, "r", newline="", encoding="utf-8") as f:
        return [transaction_from_dict(row) for row in csv.DictReader(f)]


def load_offers(offers_path: Path) -> List[Offer]:
    """Load offers from a JSON list of stored offer records."""
    if not offers_path.exists():
        return []

    with open(offers_path, "r", encoding="utf-8") as f:
        records = json.load(f)
    return [offer_from_dict(record) for record in records]


def generate_transaction_id(csv_path: Path) -> str:
    """
    Generate a unique transaction ID based on timestamp.

    Returns:
        Transaction ID string (e.g., "txn_20250115_123045_001")
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    existing_ids = {str(txn.id) for txn in load_transactions(csv_path)}

    counter = 1
    while True:
        txn_id = f"txn_{timestamp}_{counter:03d}"
        if txn_id not in existing_ids:
            return txn_id
        counter += 1


def _today(args) -> date:
    return parse_date(args.today, "today") if args.today else date.today()


def cmd_add(args):
    """
    Append a transaction to the ledger.

    Args:
        args: Parsed command-line arguments with fields:
            - date: YYYY-MM-DD
            - amount: float
            - merchant: free text
            - categories: comma separated labels
            - description: free text
    """
    csv_path = Path(args.ledger)

    if args.amount <= 0:
        print(f"Error: Amount must be greater than 0. Got: {args.amount}")
        sys.exit(1)

    txn_date = parse_date(args.date)
    categories = sorted(parse_categories({"categories": args.categories or ""}))

    ensure_csv_exists(csv_path)
    txn_id = generate_transaction_id(csv_path)
    row = [txn_id, txn_date.isoformat(), args.amount, args.merchant or "", ",".join(categories), args.description or ""]

    with open(csv_path, "a", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(row)

    print(f"Transaction added: {txn_id}")
    print(f"  Date: {txn_date.isoformat()}")
    print(f"  Amount: ${args.amount:.2f}")
    if args.merchant:
        print(f"  Merchant: {args.merchant}")
    if categories:
        print(f"  Categories: {', '.join(categories)}")


def cmd_show(args):
    """Show progress of every offer, ordered for action."""
    today = _today(args)
    offers = load_offers(Path(args.offers))
    transactions = load_transactions(Path(args.ledger))

    if not offers:
        print("No offers found.")
        return

    print(f"\n=== Offer Progress as of {today.isoformat()} ===\n")
    for summary in summarize_offers(offers, transactions, today):
        offer = summary.offer
        progress = summary.progress
        label = BUCKET_LABELS.get(summary.priority_bucket, "")
        print(f"[{label}] {offer.name} ({offer.type}) {offer.start_date} to {offer.end_date}")
        print(f"  Spending: ${progress.total_spending:.2f} across {progress.total_transactions} transaction(s)")
        if progress.months:
            for month in progress.months:
                mark = "x" if month.completed else " "
                print(f"  [{mark}] {month.month}: ${month.spending:.2f}, {month.transaction_count} txn(s)")
            print(f"  Months completed: {progress.total_completed}/{len(progress.months)}")
        else:
            print(f"  Progress: {progress.progress:.0f}%")
        if progress.tier_reached is not None:
            print(f"  Tier reached: {progress.tier_reached.threshold:g} -> ${progress.tier_reached.reward:.2f}")
        print(f"  Earned: ${progress.earned_reward:.2f}")
        if not summary.expired:
            print(f"  Days left: {summary.days_until_expiration}")
        print()


def cmd_recommend(args):
    """Print ranked recommendations and the master strategy."""
    today = _today(args)
    offers = load_offers(Path(args.offers))
    transactions = load_transactions(Path(args.ledger))

    result = get_optimal_spending_recommendations(offers, transactions, today)
    if not result.recommendations:
        print("No active offers need anything right now.")
        return

    print(f"\n=== Recommendations as of {today.isoformat()} ===\n")
    for i, rec in enumerate(result.recommendations, 1):
        print(f"{i}. [{rec.priority}] {' + '.join(rec.offer_names)}")
        print(f"   {rec.period_start} to {rec.period_end}")
        print(f"   {describe_plan(rec.plan, rec.categories, rec.min_transaction)}")
        if rec.savings:
            print(f"   Saves ${rec.savings.dollars_saved:.2f} and {rec.savings.transactions_saved} transaction(s)")
        for deadline in rec.urgent_deadlines:
            print(f"   ! {deadline.offer_name} ends {deadline.date} ({deadline.days_remaining} day(s) left)")
        print()

    strategy = result.master_strategy
    if strategy is None:
        return
    print("--- Master Strategy ---")
    for phase in strategy.phases:
        flag = " (urgent)" if phase.urgent else ""
        print(f"Phase {phase.number} [{phase.kind}]{flag}: {', '.join(phase.offer_names)}")
        print(f"   {phase.start} to {phase.end}: {describe_plan(phase.plan, phase.categories, phase.min_transaction)}")
        for offer_id, months in phase.remaining_months.items():
            print(f"   Still open later for {offer_id}: {', '.join(months)}")
    print(f"Total potential reward: ${strategy.total_potential_reward:.2f}")
    print()


def cmd_match(args):
    """List the offers a hypothetical transaction would count toward."""
    offers = load_offers(Path(args.offers))
    candidate = transaction_from_dict({
        "id": "candidate",
        "date": args.date,
        "amount": args.amount,
        "merchant": args.merchant or "",
        "categories": args.categories or "",
    })

    matches = matching_offers_for_transaction(candidate, offers)
    if not matches:
        print("No offers match this transaction.")
        return

    print(f"Transaction of ${candidate.amount:.2f} on {candidate.date} counts toward:")
    for offer in matches:
        print(f"  - {offer.name}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Offer tracker CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("--ledger", default=str(CSV_PATH), help="Transactions CSV file")
    parser.add_argument("--offers", default=str(OFFERS_PATH), help="Offers JSON file")
    parser.add_argument("--verbose", action="store_true", help="Log engine details")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Add command
    parser_add = subparsers.add_parser("add", help="Add a new transaction")
    parser_add.add_argument("--date", required=True, help="Transaction date (YYYY-MM-DD)")
    parser_add.add_argument("--amount", type=float, required=True, help="Amount")
    parser_add.add_argument("--merchant", default="", help="Merchant name")
    parser_add.add_argument("--categories", default="", help="Comma separated categories")
    parser_add.add_argument("--description", default="", help="Free text")

    # Show command
    parser_show = subparsers.add_parser("show", help="Show offer progress")
    parser_show.add_argument("--today", default=None, help="Reference date (YYYY-MM-DD)")

    # Recommend command
    parser_recommend = subparsers.add_parser("recommend", help="Get spending recommendations")
    parser_recommend.add_argument("--today", default=None, help="Reference date (YYYY-MM-DD)")

    # Match command
    parser_match = subparsers.add_parser("match", help="Offers a transaction would count toward")
    parser_match.add_argument("--date", required=True, help="Transaction date (YYYY-MM-DD)")
    parser_match.add_argument("--amount", type=float, required=True, help="Amount")
    parser_match.add_argument("--merchant", default="", help="Merchant name")
    parser_match.add_argument("--categories", default="", help="Comma separated categories")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    commands = {
        "add": cmd_add,
        "show": cmd_show,
        "recommend": cmd_recommend,
        "match": cmd_match,
    }
    try:
        commands[args.command](args)
    except MalformedRecordError as exc:
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
