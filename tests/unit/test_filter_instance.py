"""
Unit tests for Filter instances.
"""

import logging

import pytest

from filterspec import Filter
from filterspec.core.exceptions import (
    ConfigurationError,
    ConstructionError,
    ValidationError,
)
from filterspec.core.filter import FilterValue
from filterspec.query import Eq, Gt, Gte, In, Lte


class TestConstruction:
    """Test creating instances."""

    def test_empty(self, Products):
        """Test an instance with no values."""
        f = Products()
        assert f.save() == {}
        assert f.query() == {}

    def test_initial_values(self, products):
        """Test values passed to the constructor."""
        assert products.get("MinPrice") == 3
        assert products.enabled("MinPrice")
        assert products.query() == {"price": {"$gte": 3}}

    def test_invalid_initial_value(self, Products):
        """Test bad initial values raise ConstructionError."""
        with pytest.raises(ConstructionError) as exc_info:
            Products({"MinPrice": "abc"})

        assert isinstance(exc_info.value, ValidationError)
        assert exc_info.value.name == "MinPrice"
        assert exc_info.value.value == "abc"
        assert "Invalid initial value" in str(exc_info.value)

    def test_unknown_initial_name(self, Products):
        """Test unknown names raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            Products({"Colour": "red"})

    def test_save_round_trip(self, Products):
        """Test save() output can rebuild an equal instance."""
        f = Products({"MinPrice": 3, "Category": ["a", "b"]})
        assert Products(f.save()) == f


class TestSet:
    """Test setting values."""

    def test_set_one(self, products):
        """Test setting a single value."""
        result = products.set("MaxPrice", 10)

        assert result is products
        assert products.get("MaxPrice") == 10
        assert products.query() == {"price": {"$gte": 3}, "$and": [{"price": {"$lte": 10}}]}

    def test_set_mapping(self, products):
        """Test setting several values."""
        products.set({"Brand": "acme", "Category": ["a", "b"]})

        assert products.save() == {
            "MinPrice": 3,
            "Category": ["a", "b"],
            "Brand": "acme",
        }

    def test_set_invalid(self, products):
        """Test invalid values are rejected and nothing changes."""
        with pytest.raises(ValidationError) as exc_info:
            products.set("MinPrice", "abc")

        assert exc_info.value.name == "MinPrice"
        assert products.get("MinPrice") == 3

    def test_set_unknown(self, products):
        """Test unknown names."""
        with pytest.raises(ConfigurationError):
            products.set("Colour", "red")

    def test_set_mapping_not_transactional(self, products):
        """Test items before a failing one stay applied."""
        with pytest.raises(ValidationError):
            products.set({"Brand": "acme", "MaxPrice": "abc", "Category": ["x", "y"]})

        assert products.get("Brand") == "acme"
        assert products.get("MaxPrice") is None
        assert products.get("Category") is None

    def test_set_keeps_enabled_state(self, products):
        """Test setting a disabled filter keeps it disabled."""
        products.disable("MinPrice")
        products.set("MinPrice", 5)

        assert products.get("MinPrice") == 5
        assert not products.enabled("MinPrice")

    def test_value_is_copied(self, products):
        """Test later changes to the caller's object don't leak in."""
        categories = ["a", "b"]
        products.set("Category", categories)
        categories.append("c")

        assert products.get("Category") == ["a", "b"]
        products.get("Category").append("z")
        assert products.get("Category") == ["a", "b"]


class TestUnset:
    """Test removing values."""

    def test_unset(self, products):
        """Test unsetting one name."""
        products.unset("MinPrice")

        assert "MinPrice" not in products
        assert products.get("MinPrice") is None
        assert products.query() == {}

    def test_unset_many(self, Products):
        """Test unsetting names and lists of names."""
        f = Products({"MinPrice": 1, "MaxPrice": 9, "Brand": "acme"})
        f.unset("MinPrice", ["MaxPrice", "Brand"])
        assert f.save() == {}

    def test_unset_missing_value(self, products):
        """Test unsetting a name with no value is a no-op."""
        products.unset("Brand")
        assert products.save() == {"MinPrice": 3}

    def test_unset_unknown(self, products):
        """Test unknown names."""
        with pytest.raises(ConfigurationError):
            products.unset("Colour")


class TestEnableDisable:
    """Test toggling values."""

    def test_disable(self, products):
        """Test disabled values are kept but left out."""
        products.disable("MinPrice")

        assert products.get("MinPrice") == 3
        assert not products.enabled("MinPrice")
        assert products.save() == {}
        assert products.query() == {}

    def test_enable(self, products):
        """Test re-enabling."""
        products.disable("MinPrice").enable("MinPrice")
        assert products.query() == {"price": {"$gte": 3}}

    def test_unset_names_ignored(self, products):
        """Test toggling names without a value."""
        products.enable("Brand")
        products.disable("Brand")
        assert "Brand" not in products

    def test_unknown(self, products):
        """Test unknown names."""
        with pytest.raises(ConfigurationError):
            products.disable("Colour")
        with pytest.raises(ConfigurationError):
            products.enabled("Colour")
        with pytest.raises(ConfigurationError):
            products.get("Colour")


class TestClearResetClone:
    """Test bulk operations."""

    def test_clear(self, Products):
        """Test clear() removes everything."""
        f = Products({"MinPrice": 1, "Brand": "acme"})
        f.clear()
        assert f.save() == {}

    def test_clear_with_values(self, Products):
        """Test clear() keeps and sets the given values."""
        f = Products({"MinPrice": 1, "Brand": "acme"})
        f.clear({"MinPrice": 2, "MaxPrice": 5})
        assert f.save() == {"MinPrice": 2, "MaxPrice": 5}

    def test_reset(self, products):
        """Test reset() goes back to the construction values."""
        products.set({"MinPrice": 7, "Brand": "acme"}).disable("MinPrice")
        products.reset()

        assert products.save() == {"MinPrice": 3}
        assert products.enabled("MinPrice")

    def test_reset_with_values(self, products):
        """Test reset() then set."""
        products.set("Brand", "acme")
        products.reset({"MaxPrice": 9})
        assert products.save() == {"MinPrice": 3, "MaxPrice": 9}

    def test_reset_empty_baseline(self, Products):
        """Test reset() on an instance built without values."""
        f = Products().set("Brand", "acme")
        f.reset()
        assert f.save() == {}

    def test_clone(self, products):
        """Test clone() copies enabled values."""
        products.set("Brand", "acme").disable("Brand")
        copy = products.clone()

        assert copy is not products
        assert type(copy) is type(products)
        assert copy.save() == {"MinPrice": 3}
        assert "Brand" not in copy

    def test_clone_with_values(self, products):
        """Test clone() applies extra values to the copy only."""
        copy = products.clone({"MaxPrice": 10})

        assert copy.save() == {"MinPrice": 3, "MaxPrice": 10}
        assert products.save() == {"MinPrice": 3}

    def test_clone_shares_baseline(self, products):
        """Test a clone resets to the original construction values."""
        products.set("MinPrice", 8)
        copy = products.clone()
        copy.reset()
        assert copy.save() == {"MinPrice": 3}


class TestQuery:
    """Test query building."""

    def test_order_and_merge(self, Products):
        """Test fragments are merged in spec order."""
        f = Products({"Brand": "acme", "Category": ["a", "b"]})
        assert list(f.query()) == ["category", "brand"]

    def test_colliding_fields(self, Products):
        """Test filters on the same field keep every constraint."""
        f = Products({"MinPrice": 1, "MaxPrice": 9})
        assert f.query() == {"price": {"$gte": 1}, "$and": [{"price": {"$lte": 9}}]}

    def test_extra_query(self, products):
        """Test extra queries are merged first."""
        assert products.query({"stock": {"$gt": 0}}) == {
            "stock": {"$gt": 0},
            "price": {"$gte": 3},
        }
        assert products.query({"price": 1}) == {
            "price": 1,
            "$and": [{"price": {"$gte": 3}}],
        }

    def test_extra_query_invalid(self, products):
        """Test extra queries must be mappings."""
        with pytest.raises(ValidationError):
            products.query(["price"])

    def test_in_degrades(self, Products):
        """Test a one-element In is queried as equality."""
        assert Products({"Category": ["a"]}).query() == {"category": "a"}


class TestHooks:
    """Test lifecycle hooks."""

    def test_before_set_replaces(self):
        """Test before_set can replace the value."""
        def double(ctx, value, replace):
            replace(value * 2)

        cls = Filter.create({"Min": {"filter": Gte("n"), "before_set": double}})
        f = cls({"Min": 2})

        assert f.get("Min") == 4
        assert f.query() == {"n": {"$gte": 4}}

    def test_before_set_context(self):
        """Test hooks receive the name and the instance."""
        seen = []

        def record(ctx, value, replace):
            seen.append((ctx.name, ctx.filter, value))

        cls = Filter.create({"Min": {"filter": Gte("n"), "before_set": record}})
        f = cls()
        f.set("Min", 1)

        assert seen == [("Min", f, 1)]

    def test_hooks_chain(self):
        """Test converter hooks run before config hooks and see replacements."""
        converter = Gte("n")
        converter.before_set = lambda ctx, value, replace: replace(value + 1)

        def times_ten(ctx, value, replace):
            replace(value * 10)

        cls = Filter.create({"Min": {"filter": converter, "before_set": times_ten}})
        assert cls({"Min": 1}).get("Min") == 20

    def test_late_replace_ignored(self, caplog):
        """Test replace() after the hook returned does nothing."""
        saved = []

        def keep(ctx, value, replace):
            saved.append(replace)

        cls = Filter.create({"Min": {"filter": Gte("n"), "before_set": keep}})
        f = cls({"Min": 1})

        with caplog.at_level(logging.WARNING, logger="filterspec"):
            saved[0](100)

        assert f.get("Min") == 1
        assert "late replacement" in caplog.text

    def test_before_unset_enable_disable(self):
        """Test the other hooks fire with a context."""
        calls = []
        spec = {
            "Brand": {
                "filter": Eq("brand"),
                "before_unset": lambda ctx: calls.append(("unset", ctx.name)),
                "before_enable": lambda ctx: calls.append(("enable", ctx.name)),
                "before_disable": lambda ctx: calls.append(("disable", ctx.name)),
            }
        }
        f = Filter.create(spec)({"Brand": "acme"})
        f.disable("Brand").enable("Brand").unset("Brand")

        assert calls == [("disable", "Brand"), ("enable", "Brand"), ("unset", "Brand")]

    def test_hooks_skip_no_ops(self):
        """Test hooks don't fire when nothing would change."""
        calls = []
        spec = {
            "Brand": {
                "filter": Eq("brand"),
                "before_unset": lambda ctx: calls.append("unset"),
                "before_enable": lambda ctx: calls.append("enable"),
            }
        }
        f = Filter.create(spec)({"Brand": "acme"})
        f.enable("Brand")
        f.unset("Brand").unset("Brand")

        assert calls == ["unset"]

    def test_disable_hook_unsets(self, changes):
        """Test a before_disable hook that removes the value ends the transition."""
        spec = {
            "Brand": {
                "filter": Eq("brand"),
                "before_disable": lambda ctx: ctx.filter.unset(ctx.name),
            }
        }
        f = Filter.create(spec)({"Brand": "acme"})
        f.subscribe(changes)

        f.disable("Brand")

        assert "Brand" not in f
        assert not f.enabled("Brand")
        assert changes.count == 1

    def test_hook_errors_propagate(self):
        """Test a raising hook stops the change."""
        def refuse(ctx):
            raise ValidationError("locked", ctx.name)

        cls = Filter.create({"Brand": {"filter": Eq("brand"), "before_unset": refuse}})
        f = cls({"Brand": "acme"})

        with pytest.raises(ValidationError):
            f.unset("Brand")
        assert f.get("Brand") == "acme"


class TestDunder:
    """Test equality, containment and repr."""

    def test_equality(self, Products):
        """Test instances compare by state."""
        assert Products({"MinPrice": 1}) == Products({"MinPrice": 1})
        assert Products({"MinPrice": 1}) != Products({"MinPrice": 2})
        assert Products({"MinPrice": 1}) != Products({"MinPrice": 1}).disable("MinPrice")

    def test_equality_across_classes(self, Products, product_spec):
        """Test instances of different classes are never equal."""
        Other = Filter.create(product_spec)
        assert Products({"MinPrice": 1}) != Other({"MinPrice": 1})
        assert Products() != {}

    def test_unhashable(self, products):
        """Test instances are mutable and unhashable."""
        with pytest.raises(TypeError):
            hash(products)

    def test_repr(self, products):
        """Test repr shows values and disabled state."""
        assert repr(products) == "Products(MinPrice=3)"
        products.disable("MinPrice")
        assert repr(products) == "Products(MinPrice=3 (disabled))"

    def test_filter_value(self):
        """Test FilterValue comparison."""
        assert FilterValue([1]).same_as(FilterValue([1]))
        assert not FilterValue([1]).same_as(FilterValue([1], enabled=False))
        assert not FilterValue(1).same_as(None)

    def test_class_accessors_on_instance(self, products):
        """Test names() and type() work on instances."""
        assert products.names() == ["MinPrice", "MaxPrice", "Category", "Brand"]
        assert products.type() is None


class TestOtherConverters:
    """Test instances with less common converters."""

    def test_gt_with_strings(self):
        """Test numeric strings are validated and kept as given."""
        cls = Filter.create({"Min": Gt("price")})
        f = cls({"Min": "5"})

        assert f.get("Min") == "5"
        assert f.query() == {"price": {"$gt": 5.0}}

    def test_distinct_fields_flattened(self):
        """Test filters on different fields merge into one document."""
        cls = Filter.create({"InStock": Eq("in_stock"), "Max": Lte("price")})
        f = cls({"InStock": 1, "Max": 20})
        assert f.query() == {"in_stock": 1, "price": {"$lte": 20}}

    def test_in_with_tuple(self):
        """Test tuples are stored as given and queried as lists."""
        cls = Filter.create({"Cat": In("category")})
        f = cls({"Cat": ("a", "b")})
        assert f.query() == {"category": {"$in": ["a", "b"]}}
