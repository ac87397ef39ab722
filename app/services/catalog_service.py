"""Device catalog: global and shop entries, CSV import and export."""
import csv
import io
from dataclasses import dataclass, field

from app import db
from app.errors import ConflictError, NotFoundError, ValidationError
from app.models import Brand, DeviceModel, DeviceType, ErrorCatalogEntry

CSV_COLUMNS = ['device_type', 'brand', 'model']


@dataclass
class CatalogImportResult:
    """Result of a CSV import."""
    device_types_created: int = 0
    brands_created: int = 0
    models_created: int = 0
    skipped: int = 0
    errors: list = field(default_factory=list)

    def to_dict(self):
        return {
            'device_types_created': self.device_types_created,
            'brands_created': self.brands_created,
            'models_created': self.models_created,
            'skipped': self.skipped,
            'errors': self.errors,
        }


def _same_name(column, name: str):
    return db.func.lower(column) == name.strip().lower()


def _scope_filter(model, shop_id):
    return model.shop_id.is_(None) if shop_id is None else model.shop_id == shop_id


def find_device_type(name: str, shop_id=None):
    """Find a device type visible for the shop (own entries first)."""
    query = DeviceType.visible_for(shop_id) if shop_id else DeviceType.query.filter(DeviceType.shop_id.is_(None))
    return query.filter(_same_name(DeviceType.name, name)) \
        .order_by(DeviceType.shop_id.is_(None)).first()


def find_brand(name: str, device_type_id: int, shop_id=None):
    query = Brand.visible_for(shop_id) if shop_id else Brand.query.filter(Brand.shop_id.is_(None))
    return query.filter(_same_name(Brand.name, name), Brand.device_type_id == device_type_id) \
        .order_by(Brand.shop_id.is_(None)).first()


def create_device_type(name: str, shop_id=None) -> DeviceType:
    """Create a device type; shop_id None creates a global entry."""
    if not name or not name.strip():
        raise ValidationError('Name ist erforderlich')
    exists = DeviceType.query.filter(_scope_filter(DeviceType, shop_id),
                                     _same_name(DeviceType.name, name)).first()
    if exists:
        raise ConflictError(f'Gerätetyp "{name}" existiert bereits')
    device_type = DeviceType(name=name.strip(), shop_id=shop_id)
    db.session.add(device_type)
    db.session.flush()
    return device_type


def create_brand(name: str, device_type_id: int, shop_id=None) -> Brand:
    """Create a brand for a device type."""
    if not name or not name.strip():
        raise ValidationError('Name ist erforderlich')
    device_type = db.session.get(DeviceType, device_type_id) if device_type_id else None
    if device_type is None or (device_type.shop_id not in (None, shop_id)):
        raise NotFoundError('Gerätetyp nicht gefunden')
    exists = Brand.query.filter(_scope_filter(Brand, shop_id), Brand.device_type_id == device_type_id,
                                _same_name(Brand.name, name)).first()
    if exists:
        raise ConflictError(f'Hersteller "{name}" existiert bereits')
    brand = Brand(name=name.strip(), device_type_id=device_type_id, shop_id=shop_id)
    db.session.add(brand)
    db.session.flush()
    return brand


def create_models(brand_id: int, names: list, shop_id=None) -> tuple[list, int]:
    """Create several models for a brand; existing names are skipped.

    Returns:
        (created models, skipped count)
    """
    brand = db.session.get(Brand, brand_id) if brand_id else None
    if brand is None or brand.shop_id not in (None, shop_id):
        raise NotFoundError('Hersteller nicht gefunden')

    existing = {
        m.name.lower() for m in DeviceModel.query.filter(
            DeviceModel.brand_id == brand.id,
            db.or_(DeviceModel.shop_id.is_(None), DeviceModel.shop_id == shop_id)
        )
    }
    created, skipped = [], 0
    for name in names:
        name = (name or '').strip()
        if not name or name.lower() in existing:
            skipped += 1
            continue
        model = DeviceModel(name=name, brand_id=brand.id,
                            device_type_id=brand.device_type_id, shop_id=shop_id)
        db.session.add(model)
        created.append(model)
        existing.add(name.lower())
    db.session.flush()
    return created, skipped


def delete_device_type(device_type: DeviceType) -> None:
    if device_type.brands.count():
        raise ConflictError('Gerätetyp wird noch von Herstellern verwendet')
    db.session.delete(device_type)


def delete_brand(brand: Brand) -> None:
    """Delete a brand with its models."""
    db.session.delete(brand)


def catalog_rows(shop_id=None, include_global=True) -> list[dict]:
    """Flat rows (device_type, brand, model) for export."""
    if shop_id is None:
        query = DeviceModel.query.filter(DeviceModel.shop_id.is_(None))
    elif include_global:
        query = DeviceModel.visible_for(shop_id)
    else:
        query = DeviceModel.query.filter(DeviceModel.shop_id == shop_id)

    rows = []
    for model in query.all():
        brand = model.brand
        rows.append({
            'device_type': brand.device_type.name if brand and brand.device_type else '',
            'brand': brand.name if brand else '',
            'model': model.name,
        })
    rows.sort(key=lambda r: (r['device_type'].lower(), r['brand'].lower(), r['model'].lower()))
    return rows


def export_csv(shop_id=None, include_global=True) -> str:
    """Export the catalog as semicolon separated CSV."""
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS, delimiter=';')
    writer.writeheader()
    writer.writerows(catalog_rows(shop_id, include_global))
    return output.getvalue()


def import_csv(content: str, shop_id=None) -> CatalogImportResult:
    """Import device_type;brand;model rows. Existing entries are skipped.

    Comma separated files are accepted too. shop_id None imports into the
    global catalog. The caller commits.
    """
    result = CatalogImportResult()
    content = content.lstrip('\ufeff')
    if not content.strip():
        raise ValidationError('CSV-Datei ist leer')

    first_line = content.splitlines()[0]
    delimiter = ';' if first_line.count(';') >= first_line.count(',') else ','
    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)
    headers = [h.strip().lower() for h in (reader.fieldnames or [])]
    if not all(col in headers for col in CSV_COLUMNS):
        raise ValidationError(f'CSV benötigt die Spalten: {", ".join(CSV_COLUMNS)}')

    for line_no, raw in enumerate(reader, start=2):
        row = {(k or '').strip().lower(): (v or '').strip() for k, v in raw.items()}
        type_name, brand_name, model_name = row.get('device_type'), row.get('brand'), row.get('model')
        if not type_name or not brand_name:
            result.errors.append(f'Zeile {line_no}: Gerätetyp und Hersteller sind Pflicht')
            continue

        device_type = find_device_type(type_name, shop_id)
        if device_type is None:
            device_type = DeviceType(name=type_name, shop_id=shop_id)
            db.session.add(device_type)
            db.session.flush()
            result.device_types_created += 1

        brand = find_brand(brand_name, device_type.id, shop_id)
        if brand is None:
            brand = Brand(name=brand_name, device_type_id=device_type.id, shop_id=shop_id)
            db.session.add(brand)
            db.session.flush()
            result.brands_created += 1

        if not model_name:
            continue
        exists = DeviceModel.query.filter(
            DeviceModel.brand_id == brand.id,
            _same_name(DeviceModel.name, model_name),
            db.or_(DeviceModel.shop_id.is_(None), DeviceModel.shop_id == shop_id)
        ).first()
        if exists:
            result.skipped += 1
            continue
        db.session.add(DeviceModel(name=model_name, brand_id=brand.id,
                                   device_type_id=device_type.id, shop_id=shop_id))
        db.session.flush()
        result.models_created += 1

    return result


def error_entries_for(shop_id, device_type: str = None) -> list[ErrorCatalogEntry]:
    """Active error catalog entries, optionally filtered by device type."""
    query = ErrorCatalogEntry.query.filter(
        ErrorCatalogEntry.is_active.is_(True),
        db.or_(ErrorCatalogEntry.shop_id.is_(None), ErrorCatalogEntry.shop_id == shop_id)
    )
    flag = ErrorCatalogEntry.flag_for_device_type(device_type)
    if flag is not None:
        query = query.filter(flag.is_(True))
    return query.order_by(ErrorCatalogEntry.error_text).all()


def save_error_entry(data: dict, shop_id=None, entry: ErrorCatalogEntry = None) -> ErrorCatalogEntry:
    """Create or update an error catalog entry."""
    if entry is None:
        if not (data.get('error_text') or '').strip():
            raise ValidationError('Fehlertext ist erforderlich')
        entry = ErrorCatalogEntry(shop_id=shop_id)
        db.session.add(entry)
    if 'error_text' in data:
        if not (data['error_text'] or '').strip():
            raise ValidationError('Fehlertext ist erforderlich')
        entry.error_text = data['error_text'].strip()
    for flag in ErrorCatalogEntry.FLAGS + ('is_active',):
        if flag in data:
            setattr(entry, flag, bool(data[flag]))
    db.session.flush()
    return entry


# Initial global catalog for `flask seed`
DEFAULT_CATALOG = {
    'Smartphone': {
        'Apple': ['iPhone 12', 'iPhone 13', 'iPhone 14', 'iPhone 15'],
        'Samsung': ['Galaxy S22', 'Galaxy S23', 'Galaxy A54'],
        'Xiaomi': ['Redmi Note 12', 'Redmi Note 13'],
    },
    'Tablet': {
        'Apple': ['iPad 9', 'iPad Air 5'],
        'Samsung': ['Galaxy Tab S8'],
    },
    'Laptop': {
        'Lenovo': ['ThinkPad T14'],
        'HP': ['EliteBook 840'],
    },
    'Watch': {
        'Apple': ['Watch Series 8'],
    },
    'Spielekonsole': {
        'Sony': ['PlayStation 5'],
        'Nintendo': ['Switch OLED'],
    },
}

DEFAULT_ERRORS = [
    ('Display gebrochen', {}),
    ('Akku schwach', {}),
    ('Ladebuchse defekt', {'for_gameconsole': False}),
    ('Kamera defekt', {'for_laptop': False, 'for_gameconsole': False}),
    ('Wasserschaden', {}),
    ('Tastatur defekt', {'for_smartphone': False, 'for_tablet': False, 'for_smartwatch': False}),
    ('HDMI-Anschluss defekt', {'for_smartphone': False, 'for_tablet': False, 'for_smartwatch': False}),
]


def seed_global_catalog() -> list[str]:
    """Create the default global catalog. Returns descriptions of created rows."""
    created = []
    for type_name, brands in DEFAULT_CATALOG.items():
        device_type = find_device_type(type_name)
        if device_type is None:
            device_type = DeviceType(name=type_name)
            db.session.add(device_type)
            db.session.flush()
            created.append(f'Gerätetyp {type_name}')
        for brand_name, models in brands.items():
            brand = find_brand(brand_name, device_type.id)
            if brand is None:
                brand = Brand(name=brand_name, device_type_id=device_type.id)
                db.session.add(brand)
                db.session.flush()
                created.append(f'Hersteller {brand_name} ({type_name})')
            new_models, _ = create_models(brand.id, models)
            created.extend(f'Modell {m.name}' for m in new_models)

    for text, flags in DEFAULT_ERRORS:
        exists = ErrorCatalogEntry.query.filter_by(shop_id=None, error_text=text).first()
        if not exists:
            db.session.add(ErrorCatalogEntry(error_text=text, **flags))
            created.append(f'Fehler {text}')
    return created
