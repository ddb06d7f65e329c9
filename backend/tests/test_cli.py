"""CLI command tests (flask perms / lots / users groups)."""

from app.models import Product, UserModuleGrant


def test_perms_check(app, locations, product_with_lots, showroom_admin):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["perms", "check", "sho", "products", "add"])
    assert result.exit_code == 0
    assert result.output.startswith("DENIED")

    result = runner.invoke(args=["perms", "check", "sho", "sales", "add", "--location-id", str(locations["mall"])])
    assert result.output.startswith("ALLOWED")


def test_perms_check_unknown_module(app, showroom_admin):
    result = app.test_cli_runner().invoke(args=["perms", "check", "sho", "payroll", "view"])
    assert result.exit_code != 0
    assert "Unknown module" in result.output


def test_repair_stock_dry_run(app, db_session, product_with_lots):
    product = db_session.get(Product, product_with_lots["product_id"])
    product.total_stock = 1
    db_session.commit()

    runner = app.test_cli_runner()
    result = runner.invoke(args=["lots", "repair-stock", "--dry-run"])
    assert "DRIFT" in result.output

    result = runner.invoke(args=["lots", "repair-stock"])
    assert "FIXED" in result.output
    db_session.expire_all()
    assert db_session.get(Product, product_with_lots["product_id"]).total_stock == 170


def test_grant_module_normalizes_alias(app, db_session, make_user):
    make_user("clerk", "user")
    result = app.test_cli_runner().invoke(args=["users", "grant-module", "clerk", "Sales", "create"])
    assert result.exit_code == 0
    assert db_session.query(UserModuleGrant).filter_by(module="sales", action="add").count() == 1
