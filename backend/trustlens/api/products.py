from flask import Blueprint, jsonify, request, current_app
from sqlalchemy import or_

from trustlens.auth import current_identity, role_required
from trustlens.models import Product, Vendor, get_record
from trustlens.services import marketplace
from trustlens.services.scoring.image import analyze_image, summarize

products = Blueprint('products', __name__)

FLAGGED_BELOW = marketplace.FLAGGED_BELOW


def _read_uploads(files):
    """Read uploaded files into ``(filename, data, mimetype)`` tuples, enforcing the limits."""
    limit = current_app.config['MAX_PRODUCT_IMAGES']
    max_bytes = current_app.config['MAX_IMAGE_BYTES']
    if len(files) > limit:
        return None, f'At most {limit} images are allowed'
    uploads = []
    for upload in files:
        if not (upload.mimetype or '').startswith('image/'):
            return None, 'Only image files are allowed'
        data = upload.read()
        if len(data) > max_bytes:
            return None, f'{upload.filename} exceeds the {max_bytes // (1024 * 1024)} MB limit'
        uploads.append((upload.filename, data, upload.mimetype))
    return uploads, None


@products.route('/', methods=['POST'])
@role_required('vendor')
def create_product():
    seller = get_record(Vendor, current_identity(), 'Vendor')
    uploads, error = _read_uploads(request.files.getlist('images'))
    if error:
        return jsonify({'error': error}), 400
    data = request.form.to_dict() or request.get_json(silent=True) or {}
    product = marketplace.create_product(seller, data, uploads)
    return jsonify({
        'product': product.to_dict(),
        'image_analysis': product.meta,
        'message': f'Product created with status {product.status}',
    }), 201


@products.route('/analyze-image', methods=['POST'])
def analyze_single_image():
    upload = request.files.get('image')
    if upload is None:
        return jsonify({'error': 'No image file provided'}), 400
    data = upload.read()
    if len(data) > current_app.config['MAX_IMAGE_BYTES']:
        return jsonify({'error': 'Image exceeds the upload size limit'}), 400
    analysis = analyze_image(data, upload.filename)
    return jsonify({
        'success': True,
        'filename': upload.filename,
        'file_size': len(data),
        'analysis': analysis,
        'summary': summarize(analysis),
    })


@products.route('/', methods=['GET'])
def list_products():
    return jsonify([p.to_dict() for p in Product.query.order_by(Product.created_at.desc(), Product.id.desc())])


@products.route('/<int:product_id>', methods=['GET'])
def get_product(product_id):
    return jsonify(get_record(Product, product_id, 'Product').to_dict())


@products.route('/<int:product_id>', methods=['PUT'])
def update_product(product_id):
    product = get_record(Product, product_id, 'Product')
    data = request.get_json(silent=True) or {}
    return jsonify(marketplace.update_product(product, data).to_dict())


@products.route('/<int:product_id>', methods=['DELETE'])
def delete_product(product_id):
    marketplace.delete_product(get_record(Product, product_id, 'Product'))
    return jsonify({'message': 'Product deleted'})


@products.route('/authenticity/<int:low>/<int:high>', methods=['GET'])
def by_authenticity(low, high):
    found = Product.query.filter(Product.authenticity_score >= low, Product.authenticity_score <= high)
    return jsonify([p.to_dict() for p in found.order_by(Product.authenticity_score.desc())])


@products.route('/flagged/all', methods=['GET'])
def flagged():
    found = Product.query.filter(or_(Product.status == 'Flagged', Product.authenticity_score < FLAGGED_BELOW))
    return jsonify([p.to_dict() for p in found.order_by(Product.authenticity_score)])


@products.route('/<int:product_id>/buy', methods=['POST'])
def buy(product_id):
    product = get_record(Product, product_id, 'Product')
    data = request.get_json(silent=True) or {}
    marketplace.buy_product(product, data.get('quantity', 1))
    return jsonify({'message': 'Purchase recorded', 'product': product.to_dict()})


@products.route('/<int:product_id>/return', methods=['POST'])
def return_item(product_id):
    product = get_record(Product, product_id, 'Product')
    data = request.get_json(silent=True) or {}
    marketplace.return_product(product, data.get('quantity', 1))
    return jsonify({'message': 'Return recorded', 'product': product.to_dict()})
