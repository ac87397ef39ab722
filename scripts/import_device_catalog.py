#!/usr/bin/env python3
"""
Import-Script für den globalen Gerätekatalog

Liest Gerätetyp, Hersteller und Modell aus einer Excel- oder CSV-Datei
und legt fehlende Einträge im globalen Katalog (shop_id = NULL) an.
Mit --shop-id landen die Einträge im Katalog eines einzelnen Shops.

Ausführung:
    uv run python scripts/import_device_catalog.py katalog.xlsx
    uv run python scripts/import_device_catalog.py katalog.csv --shop-id 3

Struktur (erste Zeile = Kopfzeile):
    device_type | brand | model
    Smartphone  | Apple | iPhone 15
"""
import argparse
import csv
import io
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import openpyxl
from app import create_app, db
from app.errors import ValidationError
from app.services.catalog_service import CSV_COLUMNS, import_csv


def clean_value(value):
    """Clean cell value - handle strings, numbers, None."""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def xlsx_to_csv(path):
    """Convert the first worksheet to semicolon separated CSV text."""
    wb = openpyxl.load_workbook(path, read_only=True, data_only=True)
    ws = wb.worksheets[0]
    output = io.StringIO()
    writer = csv.writer(output, delimiter=';')
    for row in ws.iter_rows(values_only=True):
        values = [clean_value(v) for v in row[:len(CSV_COLUMNS)]]
        if any(values):
            writer.writerow(values)
    wb.close()
    return output.getvalue()


def read_csv(path):
    with open(path, 'rb') as f:
        raw = f.read()
    try:
        return raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


def main():
    """Main import function."""
    parser = argparse.ArgumentParser(description='Gerätekatalog importieren')
    parser.add_argument('path', help='Excel- (.xlsx) oder CSV-Datei')
    parser.add_argument('--shop-id', type=int, default=None,
                        help='In den Katalog dieses Shops importieren (Standard: global)')
    args = parser.parse_args()

    print("=" * 60)
    print("Gerätekatalog Import")
    print("=" * 60)

    if not os.path.exists(args.path):
        print(f"FEHLER: Datei nicht gefunden: {args.path}")
        sys.exit(1)

    if args.path.lower().endswith('.xlsx'):
        content = xlsx_to_csv(args.path)
    else:
        content = read_csv(args.path)

    app = create_app()
    with app.app_context():
        try:
            result = import_csv(content, shop_id=args.shop_id)
        except ValidationError as e:
            db.session.rollback()
            print(f"FEHLER: {e.message}")
            sys.exit(1)
        db.session.commit()

        scope = f"Shop {args.shop_id}" if args.shop_id else "global"
        print(f"\nKatalog ({scope}):")
        print(f"  Gerätetypen angelegt: {result.device_types_created}")
        print(f"  Hersteller angelegt:  {result.brands_created}")
        print(f"  Modelle angelegt:     {result.models_created}")
        print(f"  Übersprungen:         {result.skipped}")
        for error in result.errors:
            print(f"  [WARN] {error}")

    print("\nImport abgeschlossen!")


if __name__ == '__main__':
    main()
