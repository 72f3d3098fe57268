from trustlens import db, bcrypt
from datetime import datetime, timezone
import json
import random

from sqlalchemy import event

from trustlens.errors import NotFoundError
from trustlens.services.scoring import consensus as consensus_scoring
from trustlens.services.scoring import review_auth as review_auth_scoring
from trustlens.services.scoring.trust import return_rate


def utcnow():
    # Naive UTC; SQLite drops tzinfo on the way back.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    return value.isoformat() if value else None


def load_json(raw, default):
    if not raw:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return default


def json_property(column, factory):
    """Expose a JSON-encoded Text column as a Python value (read-modify-write)."""
    def getter(self):
        return load_json(getattr(self, column), factory())

    def setter(self, value):
        setattr(self, column, json.dumps(value, default=str))

    return property(getter, setter)


def get_record(model, record_id, label=None):
    """Primary-key lookup that raises NotFoundError instead of returning None."""
    try:
        record = db.session.get(model, int(record_id))
    except (TypeError, ValueError):
        record = None
    if record is None:
        raise NotFoundError(f"{label or model.__name__} not found")
    return record


class TimestampMixin:
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class PasswordMixin:
    password_hash = db.Column(db.String(256), nullable=False)

    def set_password(self, password):
        self.password_hash = bcrypt.generate_password_hash(password).decode('utf-8')

    def check_password(self, password):
        return bcrypt.check_password_hash(self.password_hash, password)


RISK_LEVELS = ('Low', 'Medium', 'High')


class User(PasswordMixin, TimestampMixin, db.Model):
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    mobile_number = db.Column(db.String(32), unique=True, nullable=False)
    trust_score = db.Column(db.Float, default=50, nullable=False)
    behavior_data_json = db.Column('behavior_data', db.Text, nullable=True)
    account_age = db.Column(db.Integer, default=0, nullable=False)
    transaction_count = db.Column(db.Integer, default=0, nullable=False)
    risk_level = db.Column(db.String(16), default='Medium', nullable=False)
    ip_address = db.Column(db.String(64), nullable=True, index=True)

    behavior_data = json_property('behavior_data_json', dict)

    @property
    def typing_cadence(self):
        return self.behavior_data.get('typing_cadence') or []

    def update_behavior(self, **fields):
        data = self.behavior_data
        data.setdefault('typing_cadence', [])
        data.setdefault('mouse_patterns', [])
        data.setdefault('login_times', [])
        data.update({k: v for k, v in fields.items() if v is not None})
        self.behavior_data = data

    def record_login(self, ip_address=None):
        data = self.behavior_data
        logins = data.get('login_times') or []
        logins.append(isoformat(utcnow()))
        data['login_times'] = logins[-50:]
        self.behavior_data = data
        if ip_address:
            self.ip_address = ip_address

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'mobile_number': self.mobile_number,
            'trust_score': self.trust_score,
            'behavior_data': self.behavior_data,
            'account_age': self.account_age,
            'transaction_count': self.transaction_count,
            'risk_level': self.risk_level,
            'ip_address': self.ip_address,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


ADDRESS_OPERATION_TYPES = ('warehouse', 'office', 'pickup', 'returns', 'other')


class Vendor(PasswordMixin, TimestampMixin, db.Model):
    __tablename__ = 'vendor'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), unique=True, nullable=False, index=True)
    company_email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    contact_person_json = db.Column('contact_person', db.Text, nullable=True)
    addresses_json = db.Column('addresses', db.Text, nullable=True)
    rating = db.Column(db.Float, default=0, nullable=False)
    trust_score = db.Column(db.Float, default=50, nullable=False)
    total_sales = db.Column(db.Integer, default=0, nullable=False)
    total_returns = db.Column(db.Integer, default=0, nullable=False)
    overall_return_rate = db.Column(db.Float, default=0, nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    products = db.relationship('Product', back_populates='seller', lazy='dynamic')

    contact_person = json_property('contact_person_json', dict)
    addresses = json_property('addresses_json', list)

    def refresh_return_rate(self):
        self.overall_return_rate = return_rate(self.total_sales, self.total_returns)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'company_email': self.company_email,
            'contact_person': self.contact_person,
            'addresses': self.addresses,
            'rating': self.rating,
            'trust_score': self.trust_score,
            'total_sales': self.total_sales,
            'total_returns': self.total_returns,
            'overall_return_rate': self.overall_return_rate,
            'is_active': self.is_active,
            'created_at': isoformat(self.created_at),
        }


@event.listens_for(Vendor, 'before_insert')
@event.listens_for(Vendor, 'before_update')
def _vendor_return_rate(mapper, connection, target):
    target.refresh_return_rate()


class Admin(PasswordMixin, TimestampMixin, db.Model):
    __tablename__ = 'admin'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)

    def to_dict(self):
        return {'id': self.id, 'username': self.username}


PRODUCT_STATUSES = ('Listed', 'Sold', 'Flagged', 'Under Review')


class Product(TimestampMixin, db.Model):
    __tablename__ = 'product'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=False, default='')
    price = db.Column(db.Float, nullable=False)
    category = db.Column(db.String(64), nullable=False, default='General')
    images_json = db.Column('images', db.Text, nullable=True)
    seller_id = db.Column(db.Integer, db.ForeignKey('vendor.id'), nullable=True, index=True)
    authenticity_score = db.Column(db.Float, default=50, nullable=False)
    status = db.Column(db.String(32), default='Listed', nullable=False)
    meta_json = db.Column('metadata', db.Text, nullable=True)
    review_count = db.Column(db.Integer, default=0, nullable=False)
    average_rating = db.Column(db.Float, default=0, nullable=False)
    quantity = db.Column(db.Integer, default=1, nullable=False)
    total_sold = db.Column(db.Integer, default=0, nullable=False)
    total_returned = db.Column(db.Integer, default=0, nullable=False)
    audit_log_json = db.Column('audit_log', db.Text, nullable=True)
    seller = db.relationship('Vendor', back_populates='products')

    images = json_property('images_json', list)
    meta = json_property('meta_json', dict)
    audit_log = json_property('audit_log_json', list)

    def to_dict(self, include_seller=True):
        data = {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'price': self.price,
            'category': self.category,
            'images': self.images,
            'seller_id': self.seller_id,
            'authenticity_score': self.authenticity_score,
            'status': self.status,
            'metadata': self.meta,
            'review_count': self.review_count,
            'average_rating': self.average_rating,
            'quantity': self.quantity,
            'total_sold': self.total_sold,
            'total_returned': self.total_returned,
            'audit_log': self.audit_log,
            'created_at': isoformat(self.created_at),
        }
        if include_seller and self.seller:
            data['seller'] = {'id': self.seller.id, 'name': self.seller.name,
                              'trust_score': self.seller.trust_score}
        return data


REVIEW_STATUSES = ('Active', 'Flagged', 'Removed')


def _default_community_counters():
    return {
        'total_votes': 0,
        'authentic_votes': 0,
        'flagged_votes': 0,
        'helpful_votes': 0,
        'flag_count': 0,
        'report_count': 0,
        'status': 'pending',
        'last_updated': None,
    }


class Review(TimestampMixin, db.Model):
    __tablename__ = 'review'
    __table_args__ = (db.UniqueConstraint('product_id', 'reviewer_id', name='uq_review_product_reviewer'),)
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    reviewer_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=False)
    authenticity_score = db.Column(db.Float, default=50, nullable=False)
    linguistic_analysis_json = db.Column('linguistic_analysis', db.Text, nullable=True)
    fingerprint_json = db.Column('fingerprint', db.Text, nullable=True)
    fingerprint_assessment_json = db.Column('fingerprint_assessment', db.Text, nullable=True)
    community_validation_json = db.Column('community_validation', db.Text, nullable=True)
    ai_analysis_json = db.Column('ai_analysis_data', db.Text, nullable=True)
    is_ai_generated = db.Column(db.Boolean, default=False, nullable=False)
    status = db.Column(db.String(16), default='Active', nullable=False)
    product = db.relationship('Product', backref=db.backref('reviews', lazy='dynamic'))
    reviewer = db.relationship('User', backref=db.backref('reviews', lazy='dynamic'))

    linguistic_analysis = json_property('linguistic_analysis_json', dict)
    fingerprint = json_property('fingerprint_json', dict)
    fingerprint_assessment = json_property('fingerprint_assessment_json', dict)
    ai_analysis = json_property('ai_analysis_json', dict)

    @property
    def community_validation(self):
        counters = _default_community_counters()
        counters.update(load_json(self.community_validation_json, {}))
        return counters

    @community_validation.setter
    def community_validation(self, value):
        value = dict(value)
        value['last_updated'] = isoformat(utcnow())
        self.community_validation_json = json.dumps(value)

    def to_dict(self):
        data = {
            'id': self.id,
            'product_id': self.product_id,
            'reviewer_id': self.reviewer_id,
            'rating': self.rating,
            'content': self.content,
            'authenticity_score': self.authenticity_score,
            'linguistic_analysis': self.linguistic_analysis,
            'fingerprint': self.fingerprint,
            'fingerprint_assessment': self.fingerprint_assessment,
            'community_validation': self.community_validation,
            'is_ai_generated': self.is_ai_generated,
            'status': self.status,
            'ai_analysis_data': self.ai_analysis,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }
        if self.reviewer:
            data['reviewer'] = {'id': self.reviewer.id, 'username': self.reviewer.username,
                                'trust_score': self.reviewer.trust_score}
        return data


ORDER_STATUSES = ('Pending', 'Confirmed', 'Processing', 'Shipped', 'Delivered', 'Cancelled', 'Returned')
ORDER_TERMINAL_STATUSES = ('Delivered', 'Cancelled', 'Returned')


def generate_order_number():
    """TL followed by ten digits, unique among stored orders."""
    while True:
        number = 'TL' + ''.join(random.choices('0123456789', k=10))
        if not Order.query.filter_by(order_number=number).first():
            return number


class Order(TimestampMixin, db.Model):
    __tablename__ = 'order'
    id = db.Column(db.Integer, primary_key=True)
    order_number = db.Column(db.String(16), unique=True, nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey('user.id'), nullable=True, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    vendor_id = db.Column(db.Integer, db.ForeignKey('vendor.id'), nullable=True, index=True)
    customer_json = db.Column('customer_snapshot', db.Text, nullable=True)
    product_json = db.Column('product_snapshot', db.Text, nullable=True)
    vendor_json = db.Column('vendor_snapshot', db.Text, nullable=True)
    quantity = db.Column(db.Integer, default=1, nullable=False)
    total_amount = db.Column(db.Float, nullable=False)
    shipping_address_json = db.Column('shipping_address', db.Text, nullable=False)
    payment_method = db.Column(db.String(32), default='Cash on Delivery', nullable=False)
    ip_address = db.Column(db.String(64), nullable=True)
    status = db.Column(db.String(16), default='Pending', nullable=False, index=True)
    status_history_json = db.Column('status_history', db.Text, nullable=True)
    tracking_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    customer_snapshot = json_property('customer_json', dict)
    product_snapshot = json_property('product_json', dict)
    vendor_snapshot = json_property('vendor_json', dict)
    shipping_address = json_property('shipping_address_json', dict)
    status_history = json_property('status_history_json', list)

    def __init__(self, **kwargs):
        super(Order, self).__init__(**kwargs)
        if not self.order_number:
            self.order_number = generate_order_number()

    def set_status(self, status, description=None, updated_by='system'):
        self.status = status
        history = self.status_history
        history.append({
            'status': status,
            'description': description or f'Order {status.lower()}',
            'updated_by': updated_by,
            'timestamp': isoformat(utcnow()),
        })
        self.status_history = history

    def to_dict(self):
        return {
            'id': self.id,
            'order_number': self.order_number,
            'customer_id': self.customer_id,
            'product_id': self.product_id,
            'vendor_id': self.vendor_id,
            'customer': self.customer_snapshot,
            'product': self.product_snapshot,
            'vendor': self.vendor_snapshot,
            'quantity': self.quantity,
            'total_amount': self.total_amount,
            'shipping_address': self.shipping_address,
            'payment_method': self.payment_method,
            'ip_address': self.ip_address,
            'status': self.status,
            'status_history': self.status_history,
            'tracking_number': self.tracking_number,
            'notes': self.notes,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


ALERT_TYPES = ('Suspicious Typing Pattern', 'Fake Review Detection', 'Rapid Activity',
               'Trust Score Drop', 'Bot Behavior')
ALERT_TARGET_TYPES = ('User', 'Product', 'Review')
ALERT_SEVERITIES = ('Low', 'Medium', 'High', 'Critical')
ALERT_STATUSES = ('Active', 'Resolved', 'Dismissed')
ALERT_ACTIONS = ('Flag Account', 'Remove Content', 'Manual Review', 'Temporary Suspension')


class Alert(TimestampMixin, db.Model):
    __tablename__ = 'alert'
    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(64), nullable=False, index=True)
    target = db.Column(db.String(64), nullable=False, index=True)
    target_type = db.Column(db.String(16), nullable=False)
    severity = db.Column(db.String(16), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)
    data_json = db.Column('data', db.Text, nullable=True)
    status = db.Column(db.String(16), default='Active', nullable=False, index=True)
    actions_json = db.Column('actions', db.Text, nullable=True)
    source = db.Column(db.String(64), default='system', nullable=False)
    resolved_at = db.Column(db.DateTime, nullable=True)

    data = json_property('data_json', dict)
    actions = json_property('actions_json', list)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'target': self.target,
            'target_type': self.target_type,
            'severity': self.severity,
            'description': self.description,
            'data': self.data,
            'status': self.status,
            'actions': self.actions,
            'source': self.source,
            'created_at': isoformat(self.created_at),
            'resolved_at': isoformat(self.resolved_at),
        }


VALIDATION_TARGET_MODELS = {'user': 'User', 'review': 'Review', 'product': 'Product', 'image': 'Product'}
VALIDATION_TYPES = ('authenticity', 'fraud_detection', 'quality_assessment', 'trust_verification')
VALIDATION_STATUSES = ('active', 'completed', 'disputed', 'cancelled')
DIFFICULTY_THRESHOLDS = {'easy': 0, 'medium': 50, 'hard': 70, 'expert': 85}
PRIORITY_ORDER = {'low': 0, 'medium': 1, 'high': 2, 'critical': 3}


class CommunityValidation(TimestampMixin, db.Model):
    __tablename__ = 'community_validation'
    id = db.Column(db.Integer, primary_key=True)
    target_type = db.Column(db.String(16), nullable=False)
    target_id = db.Column(db.Integer, nullable=False, index=True)
    target_model = db.Column(db.String(16), nullable=False)
    validation_type = db.Column(db.String(32), nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    validators_json = db.Column('validators', db.Text, nullable=True)
    consensus_json = db.Column('consensus', db.Text, nullable=True)
    ai_assessment_json = db.Column('ai_assessment', db.Text, nullable=True)
    incentives_json = db.Column('incentives', db.Text, nullable=True)
    status = db.Column(db.String(16), default='active', nullable=False, index=True)
    minimum_validators = db.Column(db.Integer, default=5, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    meta_json = db.Column('metadata', db.Text, nullable=True)

    validators = json_property('validators_json', list)
    consensus = json_property('consensus_json', dict)
    ai_assessment = json_property('ai_assessment_json', dict)
    incentives = json_property('incentives_json', lambda: {
        'reward_pool': 0, 'distributed_rewards': 0, 'validator_rewards': []})
    meta = json_property('meta_json', lambda: {'priority': 'medium', 'difficulty': 'medium', 'tags': []})

    def can_user_validate(self, user_id, now=None):
        return consensus_scoring.can_validate(self.validators, self.status, self.expires_at,
                                              user_id, now or utcnow())

    def add_vote(self, validator_id, vote, confidence, reasoning, evidence, trust_score):
        votes = self.validators
        votes.append({
            'validator_id': validator_id,
            'vote': vote,
            'confidence': confidence,
            'reasoning': reasoning,
            'evidence': evidence or [],
            'validator_trust_score': trust_score,
            'timestamp': isoformat(utcnow()),
        })
        self.validators = votes
        self.calculate_consensus()
        if self.status == 'completed':
            self.distribute_rewards()

    def calculate_consensus(self):
        result = consensus_scoring.compute_consensus(self.validators, self.minimum_validators)
        if result is None:
            return
        completed = result.pop('completed')
        self.consensus = result
        if completed:
            self.status = 'completed'

    def distribute_rewards(self):
        incentives = self.incentives
        rewards = consensus_scoring.distribute_rewards(
            self.validators, self.consensus.get('majority_vote'), incentives.get('reward_pool', 0), utcnow())
        if not rewards:
            return
        incentives['validator_rewards'] = rewards
        incentives['distributed_rewards'] = incentives.get('reward_pool', 0)
        self.incentives = incentives

    def reward_for(self, user_id):
        return sum(r['amount'] for r in self.incentives.get('validator_rewards', [])
                   if str(r['validator_id']) == str(user_id))

    def to_dict(self):
        return {
            'id': self.id,
            'target_type': self.target_type,
            'target_id': self.target_id,
            'target_model': self.target_model,
            'validation_type': self.validation_type,
            'question': self.question,
            'validators': self.validators,
            'consensus': self.consensus,
            'ai_assessment': self.ai_assessment,
            'incentives': self.incentives,
            'status': self.status,
            'minimum_validators': self.minimum_validators,
            'expires_at': isoformat(self.expires_at),
            'metadata': self.meta,
            'created_at': isoformat(self.created_at),
        }


AUTH_STEPS = ('initial_ai_scan', 'linguistic_analysis', 'behavioral_check', 'community_validation',
              'expert_review', 'final_verification')
WORKFLOW_STAGES = ('automated_screening', 'community_review', 'expert_validation', 'final_approval',
                   'completed')
DECISION_STATUSES = ('authentic', 'suspicious', 'fake', 'requires_investigation')


class ReviewAuthentication(TimestampMixin, db.Model):
    __tablename__ = 'review_authentication'
    id = db.Column(db.Integer, primary_key=True)
    review_id = db.Column(db.Integer, db.ForeignKey('review.id'), unique=True, nullable=False, index=True)
    steps_json = db.Column('authentication_steps', db.Text, nullable=True)
    overall_authentication_score = db.Column(db.Float, default=0, nullable=False)
    credibility_json = db.Column('credibility_factors', db.Text, nullable=True)
    linguistic_json = db.Column('linguistic_analysis', db.Text, nullable=True)
    workflow_json = db.Column('verification_workflow', db.Text, nullable=True)
    source_json = db.Column('source_verification', db.Text, nullable=True)
    fraud_json = db.Column('fraud_indicators', db.Text, nullable=True)
    decision_json = db.Column('final_decision', db.Text, nullable=True)
    review = db.relationship('Review')

    authentication_steps = json_property('steps_json', list)
    credibility_factors = json_property('credibility_json', dict)
    linguistic_analysis = json_property('linguistic_json', dict)
    verification_workflow = json_property('workflow_json', lambda: {
        'current_stage': 'automated_screening', 'workflow_history': [],
        'escalation_reasons': [], 'priority_level': 'medium'})
    source_verification = json_property('source_json', dict)
    fraud_indicators = json_property('fraud_json', list)
    final_decision = json_property('decision_json', dict)

    def add_step(self, step):
        step = dict(step)
        step.setdefault('timestamp', isoformat(utcnow()))
        steps = self.authentication_steps
        steps.append(step)
        self.authentication_steps = steps

    def add_fraud_indicator(self, indicator, severity, confidence, description):
        indicators = self.fraud_indicators
        indicators.append({
            'indicator': indicator,
            'severity': severity,
            'confidence': confidence,
            'description': description,
            'detected_at': isoformat(utcnow()),
        })
        self.fraud_indicators = indicators
        if severity == 'critical':
            workflow = self.verification_workflow
            workflow['priority_level'] = 'critical'
            workflow['escalation_reasons'].append(f'Critical fraud indicator: {indicator}')
            self.verification_workflow = workflow

    def calculate_authentication_score(self):
        self.overall_authentication_score = review_auth_scoring.authentication_score(
            self.authentication_steps, self.credibility_factors)
        return self.overall_authentication_score

    def progress_workflow(self, action, performed_by, notes=''):
        workflow = self.verification_workflow
        workflow['workflow_history'].append({
            'stage': workflow['current_stage'],
            'action': action,
            'timestamp': isoformat(utcnow()),
            'performed_by': performed_by,
            'notes': notes,
        })
        next_stage = review_auth_scoring.STAGE_PROGRESSION.get(workflow['current_stage'])
        if next_stage:
            workflow['current_stage'] = next_stage
        self.verification_workflow = workflow

    @property
    def critical_indicator_count(self):
        return sum(1 for i in self.fraud_indicators if i.get('severity') == 'critical')

    def summary(self):
        steps = self.authentication_steps
        decision = self.final_decision
        return {
            'review_id': self.review_id,
            'authenticity_score': self.overall_authentication_score,
            'status': decision.get('status'),
            'confidence': decision.get('confidence'),
            'workflow_stage': self.verification_workflow.get('current_stage'),
            'fraud_indicators': len(self.fraud_indicators),
            'credibility_factors': self.credibility_factors,
            'completed_steps': sum(1 for s in steps if s.get('status') == 'passed'),
            'total_steps': len(steps),
        }

    def to_dict(self):
        return {
            'id': self.id,
            'review_id': self.review_id,
            'authentication_steps': self.authentication_steps,
            'overall_authentication_score': self.overall_authentication_score,
            'credibility_factors': self.credibility_factors,
            'linguistic_analysis': self.linguistic_analysis,
            'verification_workflow': self.verification_workflow,
            'source_verification': self.source_verification,
            'fraud_indicators': self.fraud_indicators,
            'final_decision': self.final_decision,
            'created_at': isoformat(self.created_at),
            'updated_at': isoformat(self.updated_at),
        }


LIFECYCLE_STAGES = ('draft', 'pending_approval', 'listed', 'promoted', 'sold', 'delivered', 'reviewed',
                    'archived')
STAGE_ACTIONS = {
    'pending_approval': 'Submitted for approval',
    'listed': 'Listed for sale',
    'promoted': 'Promoted listing',
    'sold': 'Marked as sold',
    'delivered': 'Delivery confirmed',
    'reviewed': 'Review received',
    'archived': 'Archived product',
}
LOW_TRUST_WARNING = 40


def _parse_time(value):
    return datetime.fromisoformat(value) if value else None


class ProductLifecycle(TimestampMixin, db.Model):
    __tablename__ = 'product_lifecycle'
    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), unique=True, nullable=False, index=True)
    current_stage = db.Column(db.String(32), default='draft', nullable=False, index=True)
    events_json = db.Column('lifecycle_events', db.Text, nullable=True)
    performance_json = db.Column('performance_metrics', db.Text, nullable=True)
    trust_json = db.Column('trust_metrics', db.Text, nullable=True)
    sales_json = db.Column('sales_data', db.Text, nullable=True)
    review_data_json = db.Column('review_data', db.Text, nullable=True)
    notifications_json = db.Column('notifications', db.Text, nullable=True)
    analytics_json = db.Column('analytics', db.Text, nullable=True)
    product = db.relationship('Product')

    lifecycle_events = json_property('events_json', list)
    performance_metrics = json_property('performance_json', lambda: {
        'views': 0, 'favorites': 0, 'inquiries': 0, 'conversion_rate': 0, 'average_time_to_sale': 0})
    trust_metrics = json_property('trust_json', lambda: {
        'authenticity_score': 50, 'seller_trust_score': 50, 'community_rating': 0, 'flag_count': 0})
    sales_data = json_property('sales_json', dict)
    review_data = json_property('review_data_json', lambda: {'total_reviews': 0, 'average_rating': 0})
    notifications = json_property('notifications_json', list)
    analytics = json_property('analytics_json', lambda: {
        'daily_views': [], 'conversion_funnel': {'views': 0, 'inquiries': 0, 'negotiations': 0, 'sales': 0},
        'trust_trend': []})

    def notify(self, kind, message, priority='medium'):
        notes = self.notifications
        notes.append({
            'id': len(notes) + 1,
            'type': kind,
            'message': message,
            'timestamp': isoformat(utcnow()),
            'read': False,
            'priority': priority,
        })
        self.notifications = notes

    def add_event(self, stage, action, performed_by=None, details=None):
        events = self.lifecycle_events
        events.append({
            'stage': stage,
            'action': action,
            'timestamp': isoformat(utcnow()),
            'performed_by': performed_by,
            'details': details or {},
        })
        self.lifecycle_events = events
        if self.current_stage != stage:
            self.current_stage = stage
            self.notify('stage_change', f'Product moved to {stage} stage')

    def update_metric(self, metric, value):
        metrics = self.performance_metrics
        if metric not in metrics:
            return
        metrics[metric] = value
        if metric in ('views', 'inquiries'):
            views = metrics.get('views', 0)
            metrics['conversion_rate'] = metrics.get('inquiries', 0) / views * 100 if views else 0
        self.performance_metrics = metrics

    def track_daily_view(self, today=None):
        today = (today or utcnow()).date().isoformat()
        analytics = self.analytics
        for entry in analytics['daily_views']:
            if entry['date'] == today:
                entry['views'] += 1
                break
        else:
            analytics['daily_views'].append({'date': today, 'views': 1})
        self.analytics = analytics
        self.update_metric('views', self.performance_metrics.get('views', 0) + 1)

    def update_trust_metrics(self, authenticity_score, seller_trust_score):
        metrics = self.trust_metrics
        metrics['authenticity_score'] = authenticity_score
        metrics['seller_trust_score'] = seller_trust_score
        self.trust_metrics = metrics
        analytics = self.analytics
        analytics['trust_trend'].append({
            'date': isoformat(utcnow()),
            'score': (authenticity_score + seller_trust_score) / 2,
        })
        self.analytics = analytics
        if authenticity_score < LOW_TRUST_WARNING or seller_trust_score < LOW_TRUST_WARNING:
            self.notify('trust_warning', 'Low trust scores detected - review required', 'high')

    def listed_at(self):
        for event in self.lifecycle_events:
            if event['stage'] == 'listed':
                return _parse_time(event['timestamp'])
        return None

    def complete_sale(self, buyer_id, final_price, payment_method, shipping_method):
        sales = self.sales_data
        listed_price = sales.get('listed_price') or final_price
        self.sales_data = {
            'listed_price': listed_price,
            'final_price': final_price,
            'discount_applied': listed_price - final_price if sales.get('listed_price') else 0,
            'sold_date': isoformat(utcnow()),
            'buyer_id': buyer_id,
            'payment_method': payment_method,
            'shipping_method': shipping_method,
        }
        self.add_event('sold', 'Sale completed', buyer_id, {
            'final_price': final_price, 'payment_method': payment_method,
            'shipping_method': shipping_method})
        listed = self.listed_at()
        if listed:
            metrics = self.performance_metrics
            metrics['average_time_to_sale'] = (utcnow() - listed).total_seconds() / 86400
            self.performance_metrics = metrics

    def summary(self):
        listed = self.listed_at()
        return {
            'product_id': self.product_id,
            'current_stage': self.current_stage,
            'total_events': len(self.lifecycle_events),
            'performance_metrics': self.performance_metrics,
            'trust_metrics': self.trust_metrics,
            'unread_notifications': sum(1 for n in self.notifications if not n['read']),
            'days_listed': (utcnow() - listed).days if listed else 0,
        }

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'current_stage': self.current_stage,
            'lifecycle_events': self.lifecycle_events,
            'performance_metrics': self.performance_metrics,
            'trust_metrics': self.trust_metrics,
            'sales_data': self.sales_data,
            'review_data': self.review_data,
            'notifications': self.notifications,
            'analytics': self.analytics,
            'created_at': isoformat(self.created_at),
        }
