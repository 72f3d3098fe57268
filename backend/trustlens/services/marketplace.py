"""Record-level bookkeeping for users, products, orders and vendors.

Route handlers call into this module for anything that touches more than one
record or needs a score recomputed; the arithmetic itself lives in
``trustlens.services.scoring``.
"""
from statistics import fmean

from flask import current_app
from sqlalchemy.exc import IntegrityError

from trustlens import db
from trustlens.errors import ConflictError, ValidationError
from trustlens.models import (
    Alert, Order, ORDER_STATUSES, ORDER_TERMINAL_STATUSES, PRODUCT_STATUSES, Product, ProductLifecycle, RISK_LEVELS,
    Review, ReviewAuthentication, User, Vendor, get_record, isoformat, utcnow,
)
from trustlens.services.alerts import check_user_behavior
from trustlens.services.scoring import trust as trust_scoring
from trustlens.services.scoring.behavior import analyze_typing_behavior
from trustlens.services.scoring.image import analyze_image
from trustlens.socketio_events import broadcast_trust_score_change

FLAGGED_BELOW = 40
REVIEW_BELOW = 70
NO_IMAGES_SCORE = 30
DEFAULT_PRODUCT_AUTHENTICITY = 50
HIGH_RETURN_RATE = 20
USER_FIELDS = ('username', 'email', 'mobile_number', 'account_age', 'transaction_count', 'risk_level',
               'ip_address')
PRODUCT_FIELDS = ('name', 'description', 'price', 'category', 'images', 'quantity', 'status')


def _int(value, field, minimum=None):
    try:
        value = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer')
    if minimum is not None and value < minimum:
        raise ValidationError(f'{field} must be at least {minimum}')
    return value


def _commit_unique(what):
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f'{what} already exists')


def _flush_unique(what):
    try:
        db.session.flush()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError(f'{what} already exists')


# ---- Users ----

def ip_sharers(ip_address):
    if not ip_address:
        return None
    return User.query.filter_by(ip_address=ip_address).count()


def ip_analysis(user):
    if not user.ip_address:
        return None
    sharers = ip_sharers(user.ip_address)
    return {
        'user_id': user.id,
        'ip_address': user.ip_address,
        'total_users_with_ip': sharers,
        'score_adjustment': trust_scoring.ip_adjustment(sharers),
        'ip_status': trust_scoring.ip_status(sharers),
    }


def user_trust_score(user):
    return trust_scoring.calculate_trust_score(
        user.account_age, user.transaction_count, user.typing_cadence, user.risk_level,
        ip_sharers(user.ip_address))


def _apply_user_fields(user, data):
    for field in USER_FIELDS:
        if field in data and data[field] is not None:
            value = data[field]
            if field in ('account_age', 'transaction_count'):
                value = _int(value, field, 0)
            setattr(user, field, value)
    if user.risk_level not in RISK_LEVELS:
        raise ValidationError(f"risk_level must be one of: {', '.join(RISK_LEVELS)}")
    behavior = data.get('behavior_data') or {}
    if behavior:
        user.update_behavior(typing_cadence=behavior.get('typing_cadence'),
                             mouse_patterns=behavior.get('mouse_patterns'))
    return behavior


def create_user(data, ip_address=None):
    """Create a customer, score it and raise any behaviour alerts."""
    missing = [f for f in ('username', 'email', 'mobile_number', 'password') if not data.get(f)]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")
    user = User(account_age=0, transaction_count=0, risk_level='Medium', trust_score=50)
    user.set_password(data['password'])
    behavior = _apply_user_fields(user, data)
    if ip_address and not user.ip_address:
        user.ip_address = ip_address
    user.update_behavior()
    db.session.add(user)
    # Autoflush would count this user twice in the IP query otherwise.
    with db.session.no_autoflush:
        sharers = ip_sharers(user.ip_address)
        if sharers is not None:
            sharers += 1
    user.trust_score = trust_scoring.calculate_trust_score(
        user.account_age, user.transaction_count, user.typing_cadence, user.risk_level, sharers)

    if behavior.get('typing_cadence'):
        analysis = analyze_typing_behavior(user.typing_cadence, behavior.get('mouse_patterns'))
        user.update_behavior(ai_analysis=analysis)
        if analysis['classification'] == 'Bot':
            user.trust_score = max(10, user.trust_score - 40)
            user.risk_level = 'High'
        elif analysis['classification'] == 'Suspicious':
            user.trust_score = max(20, user.trust_score - 20)
            user.risk_level = 'Medium'
        current_app.logger.info(f"[behavior] new user classified {analysis['classification']}")
    _commit_unique('User with that username, email or mobile number')
    current_app.logger.info(f"[user-create] user={user.id} trust={user.trust_score}")
    check_user_behavior(user)
    return user


def update_user(user, data):
    old_score = user.trust_score
    behavior = _apply_user_fields(user, data)
    if data.get('password'):
        user.set_password(data['password'])
    _flush_unique('User with that username, email or mobile number')
    user.trust_score = user_trust_score(user)
    if behavior.get('typing_cadence'):
        analysis = analyze_typing_behavior(user.typing_cadence)
        user.update_behavior(ai_analysis=analysis)
        if analysis['classification'] == 'Bot':
            user.trust_score = max(10, user.trust_score - 40)
    _commit_unique('User with that username, email or mobile number')
    if user.trust_score != old_score:
        broadcast_trust_score_change(user.id, old_score, user.trust_score, 'profile_update')
    check_user_behavior(user)
    return user


def analyze_user_behavior(user, typing_data, mouse_data=None):
    analysis = analyze_typing_behavior(typing_data, mouse_data)
    user.update_behavior(typing_cadence=list(typing_data or []), ai_analysis=analysis)
    if mouse_data:
        user.update_behavior(mouse_patterns=mouse_data)
    old_score = user.trust_score
    if analysis['classification'] == 'Bot':
        user.trust_score = max(10, user.trust_score - 30)
        user.risk_level = 'High'
    elif analysis['classification'] == 'Human':
        user.trust_score = min(100, user.trust_score + 10)
        if user.risk_level == 'High':
            user.risk_level = 'Medium'
    db.session.commit()
    if user.trust_score != old_score:
        broadcast_trust_score_change(user.id, old_score, user.trust_score, 'behavior_analysis')
    check_user_behavior(user)
    return {
        'success': True,
        'behavior_analysis': analysis,
        'trust_score_change': round(user.trust_score - old_score, 2),
        'new_trust_score': user.trust_score,
        'risk_level': user.risk_level,
    }


def user_alerts(user):
    """Advisory alerts derived on read; nothing is persisted."""
    alerts = trust_scoring.detect_suspicious_activity(
        user.account_age, user.transaction_count, user.typing_cadence)
    analysis = user.behavior_data.get('ai_analysis') or {}
    details = analysis.get('analysis')
    if isinstance(details, dict):
        for factor in details.get('risk_factors', []):
            alerts.append({
                'type': 'AI Behavioral Analysis',
                'severity': 'High',
                'description': f"AI detected: {factor.replace('_', ' ', 1)}",
            })
    return alerts


def recalculate_user_trust(user):
    old_score = user.trust_score
    user.trust_score = user_trust_score(user)
    db.session.commit()
    if user.trust_score != old_score:
        broadcast_trust_score_change(user.id, old_score, user.trust_score, 'recalculation')
    current_app.logger.info(f"[trust] user={user.id} {old_score} -> {user.trust_score}")
    return {
        'user_id': user.id,
        'username': user.username,
        'old_trust_score': old_score,
        'new_trust_score': user.trust_score,
        'ip_analysis': ip_analysis(user),
    }


# ---- Products ----

def status_for_authenticity(score):
    if score < FLAGGED_BELOW:
        return 'Flagged'
    if score < REVIEW_BELOW:
        return 'Under Review'
    return 'Listed'


def analyze_uploads(uploads):
    """Score a list of ``(filename, data, mimetype)`` uploads.

    Returns ``(metadata, authenticity_score, status)`` for the product record.
    """
    if not uploads:
        return {
            'image_analysis': [],
            'overall_image_authenticity': NO_IMAGES_SCORE,
            'image_count': 0,
            'risk_factors': ['no_images_provided'],
        }, NO_IMAGES_SCORE, 'Under Review'
    analyses = []
    for filename, data, mimetype in uploads:
        analyses.append({
            'filename': filename,
            'analysis': analyze_image(data, filename),
            'size': len(data),
            'mimetype': mimetype,
        })
    average = round(fmean([a['analysis']['authenticity'] for a in analyses]))
    metadata = {
        'image_analysis': analyses,
        'overall_image_authenticity': average,
        'image_count': len(analyses),
        'risk_factors': [f for a in analyses for f in a['analysis']['risk_factors']],
    }
    return metadata, average, status_for_authenticity(average)


def create_product(vendor, data, uploads):
    if not data.get('name'):
        raise ValidationError('Product name is required')
    try:
        price = float(data.get('price'))
    except (TypeError, ValueError):
        raise ValidationError('Product price must be a number')
    if price < 0:
        raise ValidationError('Product price must not be negative')
    metadata, score, status = analyze_uploads(uploads)
    product = Product(
        name=data['name'],
        description=data.get('description') or '',
        price=price,
        category=data.get('category') or 'General',
        seller_id=vendor.id,
        authenticity_score=score,
        status=status,
        quantity=_int(data.get('quantity', 1), 'quantity', 0),
    )
    product.images = [u[0] for u in uploads]
    product.meta = metadata
    db.session.add(product)
    db.session.commit()
    current_app.logger.info(f"[product-create] product={product.id} vendor={vendor.id} "
                            f"authenticity={score} status={status}")
    return product


def update_product(product, data):
    for field in PRODUCT_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if field == 'price':
            try:
                value = float(value)
            except (TypeError, ValueError):
                raise ValidationError('Product price must be a number')
        elif field == 'quantity':
            value = _int(value, 'quantity', 0)
        elif field == 'status' and value not in PRODUCT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")
        setattr(product, field, value)
    db.session.commit()
    return product


def set_product_status(product, status, performed_by, reason=None):
    if status not in PRODUCT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")
    log = product.audit_log
    log.append({
        'action': 'status_change',
        'from': product.status,
        'to': status,
        'reason': reason or '',
        'performed_by': performed_by,
        'timestamp': isoformat(utcnow()),
    })
    product.audit_log = log
    product.status = status
    db.session.commit()
    current_app.logger.info(f"[admin] product={product.id} status -> {status} by {performed_by}")
    return product


def delete_product(product):
    if Order.query.filter_by(product_id=product.id).first():
        raise ConflictError('Products with orders cannot be deleted')
    for review in product.reviews:
        ReviewAuthentication.query.filter_by(review_id=review.id).delete()
        db.session.delete(review)
    ProductLifecycle.query.filter_by(product_id=product.id).delete()
    db.session.delete(product)
    db.session.commit()
    current_app.logger.info(f"[product-delete] product={product.id}")


def buy_product(product, quantity=1):
    quantity = _int(quantity, 'quantity', 1)
    if product.quantity < quantity:
        raise ValidationError(f'Insufficient inventory. Only {product.quantity} items available')
    product.quantity -= quantity
    product.total_sold += quantity
    if product.seller:
        product.seller.total_sales += quantity
    db.session.commit()
    return product


def return_product(product, quantity=1):
    quantity = _int(quantity, 'quantity', 1)
    if product.total_returned + quantity > product.total_sold:
        raise ValidationError('Cannot return more items than were sold')
    product.total_returned += quantity
    product.quantity += quantity
    if product.seller:
        product.seller.total_returns += quantity
    db.session.commit()
    if product.seller:
        recalculate_vendor_trust(product.seller)
    return product


def refresh_product_review_stats(product_id):
    product = db.session.get(Product, product_id)
    if product is None:
        return None
    ratings = [r.rating for r in Review.query.filter_by(product_id=product_id, status='Active')]
    product.review_count = len(ratings)
    product.average_rating = round(fmean(ratings), 2) if ratings else 0
    db.session.commit()
    return product


def refresh_product_authenticity(product):
    reviews = product.reviews.all()
    if reviews:
        product.authenticity_score = round(fmean([r.authenticity_score for r in reviews]))
        product.review_count = len(reviews)
        product.average_rating = round(fmean([r.rating for r in reviews]), 1)
    else:
        product.authenticity_score = product.meta.get('overall_image_authenticity',
                                                      DEFAULT_PRODUCT_AUTHENTICITY)
        product.review_count = 0
        product.average_rating = 0
    return product


# ---- Orders ----

def place_order(data, customer_id=None, ip_address=None):
    customer_id = customer_id or data.get('customer_id')
    product_id = data.get('product_id')
    shipping_address = data.get('shipping_address')
    if not customer_id or not product_id or not shipping_address:
        raise ValidationError('Customer ID, Product ID, and shipping address are required')
    quantity = _int(data.get('quantity', 1), 'quantity', 1)

    customer = get_record(User, customer_id, 'Customer')
    product = get_record(Product, product_id, 'Product')
    if product.quantity < quantity:
        raise ValidationError(f'Insufficient inventory. Only {product.quantity} items available')

    vendor = product.seller
    order = Order(
        customer_id=customer.id,
        product_id=product.id,
        vendor_id=vendor.id if vendor else None,
        quantity=quantity,
        total_amount=round(product.price * quantity, 2),
        payment_method=data.get('payment_method') or 'Cash on Delivery',
        ip_address=ip_address,
    )
    order.customer_snapshot = {'email': customer.email, 'name': customer.username}
    order.product_snapshot = {'name': product.name, 'price': product.price,
                              'image': (product.images or [''])[0]}
    order.vendor_snapshot = {'name': vendor.name if vendor else None,
                             'trust_score': vendor.trust_score if vendor else 50}
    order.shipping_address = shipping_address
    order.set_status('Pending', 'Order placed', 'Customer')
    db.session.add(order)

    # Inventory and the customer counter are separate writes.
    product.quantity -= quantity
    product.total_sold += quantity
    customer.transaction_count += 1
    db.session.commit()
    current_app.logger.info(f"[order] {order.order_number} customer={customer.id} product={product.id} "
                            f"qty={quantity} total={order.total_amount}")
    return order


def _restore_inventory(order, returned=False):
    product = db.session.get(Product, order.product_id)
    if product is None:
        return
    product.quantity += order.quantity
    if returned:
        product.total_returned += order.quantity
    else:
        product.total_sold = max(0, product.total_sold - order.quantity)


def update_order_status(order, status, description=None, updated_by='Customer', tracking_number=None):
    if status not in ORDER_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}")
    # Only a delivered order may move on, and only to Returned.
    if order.status in ORDER_TERMINAL_STATUSES and status != order.status \
            and not (order.status == 'Delivered' and status == 'Returned'):
        raise ValidationError(f'Cannot change order with status: {order.status}')
    if tracking_number:
        order.tracking_number = tracking_number
    if status != order.status:
        if status == 'Returned':
            _restore_inventory(order, returned=True)
        elif status == 'Cancelled':
            _restore_inventory(order)
    order.set_status(status, description, updated_by)
    db.session.commit()
    return order


def cancel_order(order, reason=None):
    if order.status in ORDER_TERMINAL_STATUSES:
        raise ValidationError(f'Cannot cancel order with status: {order.status}')
    order.set_status('Cancelled', reason or 'Customer requested cancellation', 'Customer')
    _restore_inventory(order)
    db.session.commit()
    return order


def list_orders(status=None, page=1, limit=10):
    page = max(_int(page, 'page', 1), 1)
    limit = max(_int(limit, 'limit', 1), 1)
    query = Order.query
    if status:
        query = query.filter_by(status=status)
    total = query.count()
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).offset((page - 1) * limit).limit(limit)
    return {
        'orders': [o.to_dict() for o in orders],
        'total_orders': total,
        'current_page': page,
        'total_pages': -(-total // limit),
    }


def order_stats():
    total = Order.query.count()
    counts = {s: Order.query.filter_by(status=s).count() for s in ('Pending', 'Delivered', 'Cancelled')}
    revenue = sum(o.total_amount for o in Order.query.filter(~Order.status.in_(('Cancelled', 'Returned'))))
    recent = Order.query.order_by(Order.created_at.desc(), Order.id.desc()).limit(5)
    return {
        'total_orders': total,
        'pending_orders': counts['Pending'],
        'delivered_orders': counts['Delivered'],
        'cancelled_orders': counts['Cancelled'],
        'total_revenue': round(revenue, 2),
        'delivery_rate': round(counts['Delivered'] / total * 100, 1) if total else 0,
        'cancellation_rate': round(counts['Cancelled'] / total * 100, 1) if total else 0,
        'recent_orders': [o.to_dict() for o in recent],
    }


# ---- Vendors ----

def recalculate_vendor_trust(vendor):
    products = vendor.products.all()
    if not products:
        current_app.logger.info(f"[vendor-trust] vendor={vendor.id} has no products; unchanged")
        return vendor
    reviews = Review.query.filter(Review.product_id.in_([p.id for p in products])).all()
    suspicious = sum(1 for r in reviews
                     if r.authenticity_score < trust_scoring.VENDOR_SUSPICIOUS_REVIEW_SCORE
                     or r.status == 'Flagged')
    vendor.total_sales = sum(p.total_sold for p in products)
    vendor.total_returns = sum(p.total_returned for p in products)
    vendor.trust_score = round(trust_scoring.vendor_trust_score(
        [r.authenticity_score for r in reviews], suspicious, len(products),
        vendor.total_sales, vendor.total_returns))
    vendor.rating = round(fmean([r.rating for r in reviews]), 1) if reviews else 0
    vendor.refresh_return_rate()
    db.session.commit()
    current_app.logger.info(f"[vendor-trust] vendor={vendor.id} trust={vendor.trust_score} "
                            f"products={len(products)} reviews={len(reviews)}")
    return vendor


def seller_analytics(vendor):
    products = []
    for product in vendor.products.order_by(Product.id):
        rate = trust_scoring.return_rate(product.total_sold, product.total_returned)
        products.append({
            'product_id': product.id,
            'name': product.name,
            'total_sold': product.total_sold,
            'total_returned': product.total_returned,
            'return_rate': rate,
        })
    total_sales = sum(p['total_sold'] for p in products)
    total_returns = sum(p['total_returned'] for p in products)
    return {
        'vendor_id': vendor.id,
        'total_sales': total_sales,
        'total_returns': total_returns,
        'overall_return_rate': trust_scoring.return_rate(total_sales, total_returns),
        'trust_score': vendor.trust_score,
        'products': products,
        'high_return_products': [p for p in products if p['return_rate'] > HIGH_RETURN_RATE],
    }


def vendor_product_detail(vendor, product_id):
    product = Product.query.filter_by(id=product_id, seller_id=vendor.id).first()
    if product is None:
        return None
    orders = Order.query.filter_by(product_id=product.id)
    purchases = orders.filter(Order.status != 'Cancelled').count()
    returns = orders.filter_by(status='Returned').count()
    reviews = product.reviews.order_by(Review.created_at.desc()).all()
    return {
        'product': product.to_dict(include_seller=False),
        'stats': {
            'purchases': purchases,
            'returns': returns,
            'return_rate': trust_scoring.return_rate(purchases, returns),
        },
        'reviews': [r.to_dict() for r in reviews],
        'avg_trust_score': round(fmean([r.authenticity_score for r in reviews]), 2) if reviews else 0,
    }


def recompute_all_scores():
    products = Product.query.all()
    for product in products:
        refresh_product_authenticity(product)
    db.session.commit()
    vendors = Vendor.query.all()
    for vendor in vendors:
        recalculate_vendor_trust(vendor)
    current_app.logger.info(f"[recompute] products={len(products)} vendors={len(vendors)}")
    return {'products': len(products), 'vendors': len(vendors)}


def overview():
    return {
        'users': User.query.count(),
        'vendors': Vendor.query.count(),
        'products': Product.query.count(),
        'flagged_products': Product.query.filter_by(status='Flagged').count(),
        'reviews': Review.query.count(),
        'flagged_reviews': Review.query.filter_by(status='Flagged').count(),
        'orders': Order.query.count(),
        'active_alerts': Alert.query.filter_by(status='Active').count(),
        'high_risk_users': User.query.filter_by(risk_level='High').count(),
    }
