"""Tests for first-fit-decreasing package selection."""

from decimal import Decimal

from orderflow import ErrorKind
from orderflow.context import Dimensions, PackageType
from orderflow.shipping import ShippingPackageSelector

from factories import BOX, CRATE, dims, item


D = Decimal


def _pack(items, package_types=(BOX, CRATE)):
    return ShippingPackageSelector().pack(items, package_types)


class TestPacking:
    def test_two_heavy_units_need_two_packages(self):
        shipment = _pack([item("anvil", 2, weight="5")], [BOX]).unwrap()

        assert len(shipment) == 2
        assert [p.weight for p in shipment.packages] == [D("5"), D("5")]
        assert shipment.weight == D("10")

    def test_light_units_share_a_package(self):
        shipment = _pack([item("widget", 3, weight="2")]).unwrap()

        assert len(shipment) == 1
        assert shipment.packages[0].package_type == BOX
        assert len(shipment.packages[0].units) == 3

    def test_heaviest_units_first(self):
        shipment = _pack(
            [item("light", weight="2"), item("heavy", weight="5"), item("medium", weight="3")],
            [BOX],
        ).unwrap()

        first, second = shipment.packages
        assert [u.sku.value for u in first.units] == ["heavy", "medium"]
        assert [u.sku.value for u in second.units] == ["light"]

    def test_smallest_type_that_holds_the_unit(self):
        small = _pack([item("widget")], [CRATE, BOX]).unwrap()
        large = _pack([item("bench", weight="20")], [CRATE, BOX]).unwrap()

        assert [p.package_type.code for p in small.packages] == ["box"]
        assert [p.package_type.code for p in large.packages] == ["crate"]

    def test_lighter_units_fill_open_packages_first(self):
        shipment = _pack([item("widget"), item("bench", weight="20")]).unwrap()

        assert len(shipment) == 1
        assert [u.sku.value for u in shipment.packages[0].units] == ["bench", "widget"]

    def test_volume_is_respected(self):
        cube = PackageType("cube", D("10"), dims("10", "10", "10"))
        slab = dims("10", "10", "6")

        shipment = _pack([item("slab", 2, dimensions=slab)], [cube]).unwrap()

        assert len(shipment) == 2

    def test_handling_fees_add_up(self):
        shipment = _pack([item("bench", 2, weight="20")]).unwrap()

        assert len(shipment) == 2
        assert shipment.handling_fee == D("5.00")

    def test_package_invariants_hold(self):
        items = [item("a", 4, weight="3"), item("b", 3, weight="1.5"), item("c", 2, weight="6.5")]
        shipment = _pack(items).unwrap()

        assert sum(len(p.units) for p in shipment.packages) == 9
        for package in shipment.packages:
            limits = package.package_type
            assert package.weight <= limits.max_weight
            assert package.volume_used <= limits.volume
            assert all(u.dimensions.fits_within(limits.dimensions) for u in package.units)

    def test_deterministic(self):
        items = [item("a", 2, weight="3"), item("b", 2, weight="3")]
        assert _pack(items).unwrap() == _pack(items).unwrap()

    def test_no_items_no_packages(self):
        shipment = _pack([]).unwrap()

        assert shipment.is_empty
        assert shipment.handling_fee == 0


class TestPackingErrors:
    def test_too_heavy_for_every_type(self):
        error = _pack([item("safe", weight="45")]).unwrap_err()

        assert error.kind is ErrorKind.NO_APPLICABLE_PACKAGE
        assert error.ref == "safe"
        assert error.amount == D("45")

    def test_too_long_for_every_type(self):
        pole = Dimensions(D("200"), D("5"), D("5"))
        error = _pack([item("pole", dimensions=pole)]).unwrap_err()

        assert error.kind is ErrorKind.NO_APPLICABLE_PACKAGE

    def test_no_package_types(self):
        error = _pack([item()], []).unwrap_err()
        assert error.kind is ErrorKind.NO_APPLICABLE_PACKAGE

    def test_non_positive_quantity(self):
        error = _pack([item("widget", 0)]).unwrap_err()
        assert error.kind is ErrorKind.INVALID_QUANTITY

    def test_negative_weight(self):
        error = _pack([item("widget", weight="-1")]).unwrap_err()
        assert error.kind is ErrorKind.VALIDATION

    def test_invalid_dimensions(self):
        error = _pack([item("widget", dimensions=dims("0", "1", "1"))]).unwrap_err()
        assert error.kind is ErrorKind.VALIDATION

    def test_invalid_package_type(self):
        broken = PackageType("broken", D("0"), dims())
        error = _pack([item()], [broken]).unwrap_err()

        assert error.kind is ErrorKind.VALIDATION
        assert error.ref == "broken"
