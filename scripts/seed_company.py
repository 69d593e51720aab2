import argparse
from pathlib import Path
import sys

from sqlalchemy import select

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from app.db.session import get_session_factory
from app.models.company import Company


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create, enable or disable a company token.")
    parser.add_argument("company_token")
    state = parser.add_mutually_exclusive_group()
    state.add_argument("--disable", action="store_true", help="reject registrations and uploads for this company")
    state.add_argument("--enable", action="store_true")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    session_factory = get_session_factory()
    with session_factory() as db:
        company = db.scalar(select(Company).where(Company.company_token == args.company_token))
        if company:
            action = "unchanged"
        else:
            company = Company(company_token=args.company_token, disabled=False)
            action = "created"
        if args.disable:
            company.disabled = True
            action = "disabled"
        elif args.enable:
            company.disabled = False
            action = "enabled"
        db.add(company)
        db.commit()
        db.refresh(company)
    print(f"Company {args.company_token} (id={company.id}) {action}.")


if __name__ == "__main__":
    main()
