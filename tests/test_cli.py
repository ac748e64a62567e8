import pytest

from rental_engine import app
from rental_engine.repositories.product_repo import ProductRepo


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    monkeypatch.setenv("RENTAL_ENGINE_HOME", str(tmp_path / "home"))
    monkeypatch.setattr(app, "configure_logging", lambda: None)


def test_init_db_and_availability(db_path, connection, capsys):
    product = ProductRepo(connection).create("vendor-a", "Projector", 80.0, 4)

    assert app.main(["--db", str(db_path), "init-db"]) == 0
    assert app.main(
        [
            "--db",
            str(db_path),
            "availability",
            str(product.id),
            "2025-06-01T10:00:00",
            "2025-06-03T10:00:00",
        ]
    ) == 0
    assert "4 available" in capsys.readouterr().out


def test_engine_errors_exit_with_status_one(db_path, capsys):
    assert app.main(["--db", str(db_path), "transition", "77", "confirm"]) == 1
    assert capsys.readouterr().err.startswith("error: Order 77 not found.")


def test_coupon_command(db_path, capsys):
    assert app.main(["--db", str(db_path), "coupon", "GHOST", "100"]) == 1
    assert "GHOST" in capsys.readouterr().err
