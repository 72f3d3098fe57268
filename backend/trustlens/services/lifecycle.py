"""Product lifecycle tracking: stage progression, engagement metrics and seller insights."""
from flask import current_app

from trustlens import db
from trustlens.errors import NotFoundError, ValidationError
from trustlens.models import (
    LIFECYCLE_STAGES, STAGE_ACTIONS, Product, ProductLifecycle, User, Vendor, get_record, isoformat, utcnow,
)

NEEDS_ATTENTION_BELOW = 50
TOP_PERFORMERS = 5
RECENT_DAILY_VIEWS = 30
RECENT_TRUST_TREND = 10
RECENT_UNREAD = 5


def lifecycle_for(product_id, required=True):
    lifecycle = ProductLifecycle.query.filter_by(product_id=product_id).first()
    if lifecycle is None and required:
        raise NotFoundError('Product lifecycle not found')
    return lifecycle


def _price(value):
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        raise ValidationError('Price must be a number')


def initialize(product_id, seller_id=None, initial_price=0):
    product = get_record(Product, product_id, 'Product')
    if lifecycle_for(product.id, required=False) is not None:
        raise ValidationError('Product lifecycle already initialized')
    price = _price(initial_price)
    lifecycle = ProductLifecycle(product_id=product.id, current_stage='draft')
    lifecycle.sales_data = {'listed_price': price}
    lifecycle.add_event('draft', 'Product created', seller_id, {
        'initial_price': price, 'created_at': isoformat(utcnow())})
    db.session.add(lifecycle)
    db.session.commit()
    current_app.logger.info(f"[lifecycle] initialized product={product.id}")
    return lifecycle


def progress_stage(product_id, new_stage, performed_by=None, details=None):
    if new_stage not in LIFECYCLE_STAGES:
        raise ValidationError(f"new_stage must be one of: {', '.join(LIFECYCLE_STAGES)}")
    lifecycle = lifecycle_for(product_id, required=False) or initialize(product_id, performed_by)
    lifecycle.add_event(new_stage, STAGE_ACTIONS.get(new_stage, f'Moved to {new_stage}'), performed_by,
                        details)

    seller = db.session.get(Vendor, performed_by) if performed_by is not None else None
    if seller is not None:
        lifecycle.update_trust_metrics(lifecycle.trust_metrics['authenticity_score'], seller.trust_score)
    db.session.commit()
    current_app.logger.info(f"[lifecycle] product={product_id} -> {new_stage}")
    return lifecycle


def track_view(product_id, viewer_id=None):
    lifecycle = lifecycle_for(product_id)
    lifecycle.track_daily_view()
    lifecycle.add_event(lifecycle.current_stage, 'Product viewed', viewer_id, {
        'timestamp': isoformat(utcnow()), 'view_type': 'page_view'})
    db.session.commit()
    return lifecycle


def track_inquiry(product_id, inquirer_id=None, inquiry_type='general'):
    lifecycle = lifecycle_for(product_id)
    lifecycle.update_metric('inquiries', lifecycle.performance_metrics['inquiries'] + 1)
    lifecycle.add_event(lifecycle.current_stage, 'Inquiry received', inquirer_id, {
        'inquiry_type': inquiry_type or 'general', 'timestamp': isoformat(utcnow())})
    db.session.commit()
    return lifecycle


def complete_sale(product_id, buyer_id, final_price, payment_method='unknown', shipping_method='standard'):
    lifecycle = lifecycle_for(product_id)
    lifecycle.complete_sale(buyer_id, _price(final_price), payment_method or 'unknown',
                            shipping_method or 'standard')
    analytics = lifecycle.analytics
    metrics = lifecycle.performance_metrics
    analytics['conversion_funnel'] = {
        'views': metrics['views'],
        'inquiries': metrics['inquiries'],
        'negotiations': analytics['conversion_funnel'].get('negotiations', 0),
        'sales': 1,
    }
    lifecycle.analytics = analytics
    db.session.commit()
    current_app.logger.info(f"[lifecycle] sale completed product={product_id} price={final_price}")
    return lifecycle


def add_review(product_id, reviewer_id, rating, review_content=''):
    try:
        rating = int(rating)
    except (TypeError, ValueError):
        raise ValidationError('Rating must be an integer from 1 to 5')
    if not 1 <= rating <= 5:
        raise ValidationError('Rating must be an integer from 1 to 5')
    lifecycle = lifecycle_for(product_id)
    data = lifecycle.review_data
    data['total_reviews'] += 1
    data['average_rating'] = (data['average_rating'] * (data['total_reviews'] - 1) + rating) / data['total_reviews']
    lifecycle.review_data = data
    lifecycle.add_event('reviewed', 'Review added', reviewer_id, {
        'rating': rating, 'review_length': len(review_content or ''), 'timestamp': isoformat(utcnow())})
    lifecycle.notify('review_received', f'New {rating}-star review received', 'high' if rating <= 2 else 'medium')
    db.session.commit()
    return lifecycle


def _timeline(lifecycle):
    return sorted(lifecycle.lifecycle_events, key=lambda e: e['timestamp'])


def analytics(product_id):
    lifecycle = lifecycle_for(product_id)
    product = lifecycle.product
    extra = lifecycle.analytics
    return {
        'product': {'id': product.id, 'name': product.name, 'price': product.price, 'category': product.category},
        'summary': lifecycle.summary(),
        'timeline': _timeline(lifecycle),
        'performance': dict(lifecycle.performance_metrics,
                            daily_views=extra['daily_views'][-RECENT_DAILY_VIEWS:],
                            conversion_funnel=extra['conversion_funnel']),
        'trust': dict(lifecycle.trust_metrics, trust_trend=extra['trust_trend'][-RECENT_TRUST_TREND:]),
        'notifications': [n for n in lifecycle.notifications if not n['read']][:RECENT_UNREAD],
    }


def bulk_summary(product_ids):
    if not isinstance(product_ids, list):
        raise ValidationError('product_ids must be a list')
    lifecycles = ProductLifecycle.query.filter(ProductLifecycle.product_id.in_(product_ids)).all()
    return [dict(l.summary(), product_info={'name': l.product.name, 'price': l.product.price,
                                            'category': l.product.category})
            for l in lifecycles]


def performance_insights(seller_id):
    """Aggregate lifecycle metrics across every product of one vendor."""
    seller = get_record(Vendor, seller_id, 'Seller')
    product_ids = [p.id for p in seller.products]
    lifecycles = ProductLifecycle.query.filter(ProductLifecycle.product_id.in_(product_ids)).all() \
        if product_ids else []
    insights = {
        'total_products': len(lifecycles),
        'average_views': 0,
        'average_conversion_rate': 0,
        'average_trust_score': 0,
        'stage_distribution': {},
        'top_performers': [],
        'needs_attention': [],
    }
    if not lifecycles:
        return insights

    count = len(lifecycles)
    insights['average_views'] = sum(l.performance_metrics['views'] for l in lifecycles) / count
    insights['average_conversion_rate'] = sum(l.performance_metrics['conversion_rate'] for l in lifecycles) / count
    insights['average_trust_score'] = sum(l.trust_metrics['authenticity_score'] for l in lifecycles) / count
    for lifecycle in lifecycles:
        stages = insights['stage_distribution']
        stages[lifecycle.current_stage] = stages.get(lifecycle.current_stage, 0) + 1

    popular = [l for l in lifecycles if l.performance_metrics['views'] > insights['average_views']]
    popular.sort(key=lambda l: l.performance_metrics['conversion_rate'], reverse=True)
    insights['top_performers'] = [l.summary() for l in popular[:TOP_PERFORMERS]]
    insights['needs_attention'] = [
        l.summary() for l in lifecycles
        if l.trust_metrics['authenticity_score'] < NEEDS_ATTENTION_BELOW or l.trust_metrics['flag_count'] > 0
    ]
    return insights


def mark_notifications_read(product_id, notification_ids=None):
    lifecycle = lifecycle_for(product_id)
    wanted = {str(i) for i in notification_ids or []}
    notes = lifecycle.notifications
    for note in notes:
        if not wanted or str(note['id']) in wanted:
            note['read'] = True
    lifecycle.notifications = notes
    db.session.commit()
    return lifecycle


def timeline(product_id):
    lifecycle = lifecycle_for(product_id)
    names = {}
    entries = []
    for event in _timeline(lifecycle):
        performer = event.get('performed_by')
        if performer is not None and performer not in names:
            user = db.session.get(User, performer)
            names[performer] = user.username if user else None
        entries.append({
            'stage': event['stage'],
            'action': event['action'],
            'timestamp': event['timestamp'],
            'performed_by': names.get(performer) or 'System',
            'details': event.get('details', {}),
        })
    return {'product_id': lifecycle.product_id, 'current_stage': lifecycle.current_stage, 'timeline': entries}
