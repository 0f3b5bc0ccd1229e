"""
Seed script to generate synthetic freight POs, bills of lading and carrier
invoices covering each matching scenario
"""
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv
load_dotenv(Path(__file__).parent.parent / ".env")

from sqlalchemy.orm import Session
from freight_recon.database import SessionLocal, engine, Base
from freight_recon.models.purchase_order import PurchaseOrder
from freight_recon.models.bill_of_lading import BillOfLading
from freight_recon.models.invoice import Invoice
from datetime import date, timedelta
from decimal import Decimal
from faker import Faker

fake = Faker()

CARRIERS = ["Swift Logistics", "Blue Line Freight", "Midwest Haulers", "Coastal Carriers"]
ACCESSORIALS = ["Liftgate", "Residential Delivery", "Inside Delivery"]


def random_charges() -> list:
    """Linehaul, fuel surcharge and sometimes an accessorial"""
    linehaul = round(fake.random.uniform(800.0, 3500.0), 2)
    charges = [
        {"description": "Linehaul", "amount": linehaul},
        {"description": "Fuel Surcharge", "amount": round(linehaul * 0.18, 2)},
    ]
    if fake.boolean(chance_of_getting_true=40):
        charges.append({"description": fake.random_element(elements=ACCESSORIALS), "amount": 75.0})
    return charges


def total(charges: list) -> Decimal:
    return sum((Decimal(str(c["amount"])) for c in charges), Decimal("0.00"))


def create_shipments(db: Session, count: int = 10) -> list:
    """Create POs with a BOL for most of them"""
    shipments = []
    for i in range(count):
        pickup = date.today() - timedelta(days=fake.random_int(min=5, max=40))
        charges = random_charges()
        po = PurchaseOrder(
            po_number=f"PO-2026-{str(i+1).zfill(4)}",
            customer_name=fake.company(),
            carrier_name=fake.random_element(elements=CARRIERS),
            origin=f"{fake.city()}, {fake.state_abbr()}",
            destination=f"{fake.city()}, {fake.state_abbr()}",
            pickup_date=pickup,
            delivery_date=pickup + timedelta(days=fake.random_int(min=1, max=5)),
            expected_charges=charges,
            total_amount=total(charges),
            status="pending",
        )
        db.add(po)

        bol = None
        if i % 4 != 3:  # every fourth shipment has no BOL yet
            bol = BillOfLading(
                bol_number=f"BOL-{fake.bothify(text='######')}",
                po_number=po.po_number,
                carrier_name=po.carrier_name,
                origin=po.origin,
                destination=po.destination,
                pickup_date=po.pickup_date,
                delivery_date=po.delivery_date,
                weight_lbs=float(fake.random_int(min=500, max=40000)),
                item_description=fake.catch_phrase(),
                actual_charges=charges if fake.boolean() else None,
                status="delivered",
            )
            db.add(bol)
            po.status = "bol_received"
        shipments.append((po, bol))

    db.commit()
    return shipments


def create_invoices(db: Session, shipments: list) -> list:
    """Carrier invoices: exact bills, bills with a detention charge, and one with a typo'd PO number"""
    invoices = []
    for i, (po, bol) in enumerate(shipments):
        charges = [dict(c) for c in po.expected_charges]
        po_number = po.po_number
        if i % 3 == 1:
            charges.append({"description": "Detention", "amount": 150.0})
        if i == len(shipments) - 1:
            po_number = po.po_number.replace("-", "")  # OCR dropped the dashes

        invoice = Invoice(
            invoice_number=f"INV-{fake.bothify(text='#######')}",
            carrier_name=po.carrier_name,
            invoice_date=po.delivery_date,
            po_number=po_number,
            bol_number=bol.bol_number if bol else None,
            charges=charges,
            total_amount=total(charges),
            payment_terms="NET 30",
            due_date=po.delivery_date + timedelta(days=30),
            status="pending",
        )
        db.add(invoice)
        invoices.append(invoice)

    db.commit()
    return invoices


def main():
    """Main seeding function"""
    print("Creating database tables...")
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        print("Creating purchase orders and bills of lading...")
        shipments = create_shipments(db, count=10)
        print(f"Created {len(shipments)} purchase orders")

        print("Creating invoices...")
        invoices = create_invoices(db, shipments)
        print(f"Created {len(invoices)} invoices")

        print("\nSeeding complete!")
        print("Run matching with: POST /api/matching/{invoice_id}/run")

    except Exception as e:
        print(f"Error during seeding: {e}")
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == "__main__":
    main()
