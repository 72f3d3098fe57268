from trustlens.models import Admin, User, Vendor
from trustlens.seed import seed_demo_data


def test_seed_demo_data(flask_app):
    counts = seed_demo_data()
    assert counts == {'vendors': 4, 'products': 4, 'users': 3, 'admins': 1}
    alice = User.query.filter_by(username='alice').first()
    # 50 + 20 age + 12.5 transactions + 10 low risk
    assert alice.trust_score == 92.5
    assert Vendor.query.filter_by(name='Fashion Forward Ltd').first().trust_score == 92


def test_seed_admin_command(flask_app):
    runner = flask_app.test_cli_runner()
    result = runner.invoke(args=['seed-admin'])
    assert 'Admin created' in result.output
    result = runner.invoke(args=['seed-admin'])
    assert 'Admin already exists' in result.output
    assert Admin.query.count() == 1


def test_recompute_scores_command(flask_app, product):
    result = flask_app.test_cli_runner().invoke(args=['recompute-scores'])
    assert result.exit_code == 0
    assert "'products': 1" in result.output
