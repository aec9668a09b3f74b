"""Shared fixtures: a small shopping cart event model."""

import pytest

from eventmodel import ModelBuilder
from eventmodel import config as config_module


def _element(element_id, element_type, title=None, dependencies=()):
    return {
        "id": element_id,
        "title": title or element_id,
        "type": element_type,
        "fields": [{"name": "cartId", "type": "UUID"}],
        "dependencies": list(dependencies),
    }


def _dep(target_id, direction, element_type, title=None):
    return {
        "id": target_id,
        "type": direction,
        "title": title or target_id,
        "elementType": element_type,
    }


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config file at a temp dir and clear env overrides."""
    config_dir = tmp_path / "config"
    monkeypatch.setattr(config_module, "CONFIG_DIR", config_dir)
    monkeypatch.setattr(config_module, "CONFIG_FILE", config_dir / "config.json")
    for var in (
        "EVENTMODEL_ALLOW_EVENT_FED_AUTOMATION",
        "EVENTMODEL_SEQUENCING_WARNINGS",
        "EVENTMODEL_CLI_MODE",
    ):
        monkeypatch.delenv(var, raising=False)
    config_module.reset_config()
    yield
    config_module.reset_config()


@pytest.fixture
def cart_builder():
    """Add Item (STATE_CHANGE, committed) then Cart Items (STATE_VIEW, committed).

    add-item-cmd -> item-added -> cart-items-rm
    """
    builder = ModelBuilder()
    builder.add_slice("add-item", "Add Item", "STATE_CHANGE", index=1)
    builder.add_element(
        "add-item", _element("add-item-cmd", "COMMAND", "Add Item to Cart")
    )
    builder.add_element(
        "add-item",
        _element(
            "item-added",
            "EVENT",
            "Item Added to Cart",
            [_dep("add-item-cmd", "INBOUND", "COMMAND", "Add Item to Cart")],
        ),
    )
    builder.commit_slice("add-item")

    builder.add_slice("cart-items", "Cart Items", "STATE_VIEW", index=2)
    builder.add_element(
        "cart-items",
        _element(
            "cart-items-rm",
            "READMODEL",
            "Cart Items",
            [_dep("item-added", "INBOUND", "EVENT", "Item Added to Cart")],
        ),
    )
    builder.commit_slice("cart-items")
    return builder


@pytest.fixture
def cart_model_data(cart_builder):
    """Persisted dict form of the committed cart model."""
    return cart_builder.serialize()
