"""Device catalog and error catalog routes.

Blueprint: catalog_bp
Prefix: /api

Shops see the global catalog plus their own additions and manage only
their own rows. The global catalog is maintained under /api/superadmin/.
"""
import io

from flask import Blueprint, Response, g, jsonify, request, send_file

from app import db
from app.errors import NotFoundError, ValidationError
from app.models import Brand, DeviceModel, DeviceType, ErrorCatalogEntry
from app.routes.auth import MANAGER_ROLES, api_login_required, roles_required, shop_required
from app.services import catalog_service
from app.services.logging_service import log_event
from app.services.xlsx_exporter import XlsxExporter
from app.utils import get_json_data, parse_bool, parse_int

catalog_bp = Blueprint('catalog', __name__, url_prefix='/api')


def _get_owned(model, entity_id: int, shop_id):
    """Load a catalog row owned by the shop (shop_id None: global row)."""
    if shop_id is None:
        entity = model.query.filter(model.id == entity_id, model.shop_id.is_(None)).first()
    else:
        entity = model.query.filter(model.id == entity_id, model.shop_id == shop_id).first()
    if entity is None:
        raise NotFoundError('Eintrag nicht gefunden')
    return entity


def _read_upload() -> str:
    """CSV content from a multipart upload ('file') or the raw body."""
    upload = request.files.get('file')
    raw = upload.read() if upload else request.get_data()
    try:
        return raw.decode('utf-8-sig')
    except UnicodeDecodeError:
        return raw.decode('latin-1')


def _csv_response(content: str, filename: str) -> Response:
    return Response(
        '\ufeff' + content,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'}
    )


def _xlsx_response(result):
    return send_file(
        io.BytesIO(result.data),
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=result.filename
    )


# Shared handlers for shop (shop_id=int) and global (shop_id=None) scope

def _list_device_types(shop_id):
    query = DeviceType.visible_for(shop_id) if shop_id else DeviceType.query.filter(DeviceType.shop_id.is_(None))
    return jsonify([t.to_dict() for t in query.order_by(DeviceType.name).all()])


def _list_brands(shop_id):
    query = Brand.visible_for(shop_id) if shop_id else Brand.query.filter(Brand.shop_id.is_(None))
    device_type_id = request.args.get('device_type_id', type=int)
    if device_type_id:
        query = query.filter(Brand.device_type_id == device_type_id)
    return jsonify([b.to_dict() for b in query.order_by(Brand.name).all()])


def _list_models(shop_id):
    query = DeviceModel.visible_for(shop_id) if shop_id else DeviceModel.query.filter(DeviceModel.shop_id.is_(None))
    brand_id = request.args.get('brand_id', type=int)
    if brand_id:
        query = query.filter(DeviceModel.brand_id == brand_id)
    return jsonify([m.to_dict() for m in query.order_by(DeviceModel.name).all()])


def _create_device_type(shop_id):
    device_type = catalog_service.create_device_type(get_json_data().get('name'), shop_id)
    log_event('katalog', 'geraetetyp_angelegt', details=device_type.name,
              entity_type='DeviceType', entity_id=device_type.id, shop_id=shop_id)
    db.session.commit()
    return jsonify(device_type.to_dict()), 201


def _create_brand(shop_id):
    data = get_json_data()
    device_type_id = parse_int(data.get('device_type_id'), 'device_type_id')
    brand = catalog_service.create_brand(data.get('name'), device_type_id, shop_id)
    log_event('katalog', 'hersteller_angelegt', details=brand.name,
              entity_type='Brand', entity_id=brand.id, shop_id=shop_id)
    db.session.commit()
    return jsonify(brand.to_dict()), 201


def _create_models(shop_id, names):
    data = get_json_data()
    brand_id = parse_int(data.get('brand_id'), 'brand_id')
    created, skipped = catalog_service.create_models(brand_id, names, shop_id)
    if created:
        log_event('katalog', 'modelle_angelegt', details=f'{len(created)} Modelle',
                  entity_type='Brand', entity_id=brand_id, shop_id=shop_id)
    db.session.commit()
    return jsonify({
        'success': True,
        'created': [m.to_dict() for m in created],
        'skipped': skipped,
    }), 201


def _model_names() -> list:
    data = get_json_data()
    names = data.get('names')
    if names is None and data.get('name'):
        names = [data['name']]
    if isinstance(names, str):
        names = names.splitlines()
    if not isinstance(names, list) or not names:
        raise ValidationError('Mindestens ein Modellname ist erforderlich')
    return names


def _delete(model, entity_id, shop_id):
    entity = _get_owned(model, entity_id, shop_id)
    if model is DeviceType:
        catalog_service.delete_device_type(entity)
    elif model is Brand:
        catalog_service.delete_brand(entity)
    else:
        db.session.delete(entity)
    log_event('katalog', f'{model.__tablename__}_geloescht', details=entity.name,
              entity_type=model.__name__, entity_id=entity_id, shop_id=shop_id)
    db.session.commit()
    return jsonify({'success': True})


def _import(shop_id):
    result = catalog_service.import_csv(_read_upload(), shop_id)
    log_event('katalog', 'katalog_importiert',
              details=f'{result.models_created} Modelle, {result.skipped} übersprungen',
              shop_id=shop_id)
    db.session.commit()
    return jsonify({'success': True, **result.to_dict()})


# ============================================================================
# Shop catalog
# ============================================================================

@catalog_bp.route('/device-types', methods=['GET'])
@api_login_required
@shop_required
def list_device_types():
    """Global and own device types.

    Usage:
        curl -b cookies.txt http://localhost:5000/api/device-types
    """
    return _list_device_types(g.shop_id)


@catalog_bp.route('/device-types', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def create_device_type():
    return _create_device_type(g.shop_id)


@catalog_bp.route('/device-types/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def delete_device_type(id):
    """Delete an own device type (409 while brands use it)."""
    return _delete(DeviceType, id, g.shop_id)


@catalog_bp.route('/brands', methods=['GET'])
@api_login_required
@shop_required
def list_brands():
    """Global and own brands (?device_type_id= optional)."""
    return _list_brands(g.shop_id)


@catalog_bp.route('/brands', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def create_brand():
    return _create_brand(g.shop_id)


@catalog_bp.route('/brands/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def delete_brand(id):
    return _delete(Brand, id, g.shop_id)


@catalog_bp.route('/models', methods=['GET'])
@api_login_required
@shop_required
def list_models():
    """Global and own models (?brand_id= optional)."""
    return _list_models(g.shop_id)


@catalog_bp.route('/models', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def create_model():
    return _create_models(g.shop_id, _model_names())


@catalog_bp.route('/models/batch', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def create_models_batch():
    """Create several models of a brand, skipping existing names.

    JSON body: {"brand_id": 3, "names": ["Galaxy S23", "Galaxy S24"]}
    """
    return _create_models(g.shop_id, _model_names())


@catalog_bp.route('/models/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def delete_model(id):
    return _delete(DeviceModel, id, g.shop_id)


@catalog_bp.route('/catalog/export.csv', methods=['GET'])
@api_login_required
@shop_required
def export_catalog_csv():
    """Catalog as CSV (device_type;brand;model). ?own=1 exports own entries only."""
    include_global = not parse_bool(request.args.get('own', '0'))
    return _csv_response(catalog_service.export_csv(g.shop_id, include_global), 'geraetekatalog.csv')


@catalog_bp.route('/catalog/export.xlsx', methods=['GET'])
@api_login_required
@shop_required
def export_catalog_xlsx():
    include_global = not parse_bool(request.args.get('own', '0'))
    return _xlsx_response(XlsxExporter().export_catalog(g.shop_id, include_global))


@catalog_bp.route('/catalog/import', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def import_catalog():
    """Import a CSV file into the shop's own catalog.

    Usage:
        curl -X POST -b cookies.txt -F 'file=@katalog.csv' http://localhost:5000/api/catalog/import
    """
    return _import(g.shop_id)


# ============================================================================
# Error catalog
# ============================================================================

@catalog_bp.route('/error-catalog', methods=['GET'])
@api_login_required
@shop_required
def list_error_entries():
    """Active fault descriptions (?device_type=Smartphone filters by flag)."""
    entries = catalog_service.error_entries_for(g.shop_id, request.args.get('device_type'))
    return jsonify([e.to_dict() for e in entries])


@catalog_bp.route('/error-catalog', methods=['POST'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def create_error_entry():
    entry = catalog_service.save_error_entry(get_json_data(), g.shop_id)
    db.session.commit()
    return jsonify(entry.to_dict()), 201


@catalog_bp.route('/error-catalog/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def update_error_entry(id):
    entry = _get_owned(ErrorCatalogEntry, id, g.shop_id)
    catalog_service.save_error_entry(get_json_data(), g.shop_id, entry)
    db.session.commit()
    return jsonify(entry.to_dict())


@catalog_bp.route('/error-catalog/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required(*MANAGER_ROLES)
@shop_required
def delete_error_entry(id):
    entry = _get_owned(ErrorCatalogEntry, id, g.shop_id)
    db.session.delete(entry)
    db.session.commit()
    return jsonify({'success': True})


# ============================================================================
# Global catalog (superadmin)
# ============================================================================

@catalog_bp.route('/superadmin/device-types', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def global_device_types():
    return _list_device_types(None)


@catalog_bp.route('/superadmin/device-types', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def create_global_device_type():
    return _create_device_type(None)


@catalog_bp.route('/superadmin/device-types/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required('superadmin')
def delete_global_device_type(id):
    return _delete(DeviceType, id, None)


@catalog_bp.route('/superadmin/brands', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def global_brands():
    return _list_brands(None)


@catalog_bp.route('/superadmin/brands', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def create_global_brand():
    return _create_brand(None)


@catalog_bp.route('/superadmin/brands/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required('superadmin')
def delete_global_brand(id):
    return _delete(Brand, id, None)


@catalog_bp.route('/superadmin/models', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def global_models():
    return _list_models(None)


@catalog_bp.route('/superadmin/models', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def create_global_models():
    return _create_models(None, _model_names())


@catalog_bp.route('/superadmin/models/<int:id>', methods=['DELETE'])
@api_login_required
@roles_required('superadmin')
def delete_global_model(id):
    return _delete(DeviceModel, id, None)


@catalog_bp.route('/superadmin/catalog/export.csv', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def export_global_catalog_csv():
    return _csv_response(catalog_service.export_csv(None), 'geraetekatalog_global.csv')


@catalog_bp.route('/superadmin/catalog/export.xlsx', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def export_global_catalog_xlsx():
    return _xlsx_response(XlsxExporter().export_catalog(None))


@catalog_bp.route('/superadmin/catalog/import', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def import_global_catalog():
    return _import(None)


@catalog_bp.route('/superadmin/error-catalog', methods=['GET'])
@api_login_required
@roles_required('superadmin')
def global_error_entries():
    entries = ErrorCatalogEntry.query.filter(ErrorCatalogEntry.shop_id.is_(None)) \
        .order_by(ErrorCatalogEntry.error_text).all()
    return jsonify([e.to_dict() for e in entries])


@catalog_bp.route('/superadmin/error-catalog', methods=['POST'])
@api_login_required
@roles_required('superadmin')
def create_global_error_entry():
    entry = catalog_service.save_error_entry(get_json_data(), None)
    db.session.commit()
    return jsonify(entry.to_dict()), 201


@catalog_bp.route('/superadmin/error-catalog/<int:id>', methods=['PATCH', 'PUT'])
@api_login_required
@roles_required('superadmin')
def update_global_error_entry(id):
    entry = _get_owned(ErrorCatalogEntry, id, None)
    catalog_service.save_error_entry(get_json_data(), None, entry)
    db.session.commit()
    return jsonify(entry.to_dict())
