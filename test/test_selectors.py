import pyarrow as pa
import pyarrow.compute as pc
import pytest

from tidygroups.compute import (
    Across,
    ColumnSelector,
    FunctionCallExpression,
    MaxAggregation,
    SumAggregation,
    col,
)
from tidygroups.errors import InvalidSpec

SCHEMA = pa.schema(
    [
        ("sex", pa.string()),
        ("year", pa.int64()),
        ("nb_births", pa.int64()),
        ("nb_deaths", pa.int32()),
        ("ratio", pa.float64()),
    ]
)


def test_select_by_name_keeps_given_order():
    selector = ColumnSelector.by_name("nb_deaths", "sex")
    assert selector.select(SCHEMA) == ["nb_deaths", "sex"]


def test_select_by_name_missing_column():
    with pytest.raises(InvalidSpec, match="not found in table: nope"):
        ColumnSelector.by_name("sex", "nope").select(SCHEMA)


def test_select_by_type_keeps_schema_order():
    selector = ColumnSelector.by_type(pa.types.is_integer)
    assert selector.select(SCHEMA) == ["year", "nb_births", "nb_deaths"]


def test_select_excludes_columns():
    assert ColumnSelector.by_type(pa.types.is_integer).select(SCHEMA, exclude=["year"]) == [
        "nb_births",
        "nb_deaths",
    ]
    assert ColumnSelector.by_name("sex", "year").select(SCHEMA, exclude=["sex"]) == ["year"]


def test_selector_requires_names_or_predicate():
    with pytest.raises(ValueError):
        ColumnSelector()
    with pytest.raises(ValueError):
        ColumnSelector(names=("sex",), predicate=pa.types.is_integer)


def test_selector_str():
    assert str(ColumnSelector.by_name("sex", "year")) == "ColumnSelector.by_name(sex, year)"
    assert (
        str(ColumnSelector.by_type(pa.types.is_floating))
        == "ColumnSelector.by_type(pyarrow.types.is_floating)"
    )


def test_across_expands_each_column_and_function():
    across = Across(
        ColumnSelector.by_name("nb_births", "nb_deaths"),
        {"sum": SumAggregation, "max": MaxAggregation},
    )
    specs = across.expand(SCHEMA)
    assert list(specs) == ["nb_births_sum", "nb_births_max", "nb_deaths_sum", "nb_deaths_max"]
    assert isinstance(specs["nb_deaths_max"], MaxAggregation)
    assert specs["nb_deaths_max"].column == "nb_deaths"


def test_across_custom_names():
    double = lambda c: FunctionCallExpression(pc.multiply, col(c), 2)
    across = Across(ColumnSelector.by_type(pa.types.is_floating), {"double": double}, names="{col}")
    specs = across.expand(SCHEMA)
    assert list(specs) == ["ratio"]
    assert str(specs["ratio"]) == "pyarrow.compute.multiply(ColumnRef(ratio),2)"


def test_across_excludes_columns():
    across = Across(ColumnSelector.by_type(pa.types.is_integer), {"sum": SumAggregation})
    assert list(across.expand(SCHEMA, exclude=("year",))) == ["nb_births_sum", "nb_deaths_sum"]


def test_across_duplicate_names():
    across = Across(
        ColumnSelector.by_name("nb_births"),
        {"sum": SumAggregation, "max": MaxAggregation},
        names="{col}",
    )
    with pytest.raises(InvalidSpec, match="more than once"):
        across.expand(SCHEMA)


def test_across_requires_functions():
    with pytest.raises(InvalidSpec):
        Across(ColumnSelector.by_name("nb_births"), {})
