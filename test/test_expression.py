import pytest
import pyarrow as pa
import pyarrow.compute as pc
from tidygroups.compute.expressions import FunctionCallExpression
from tidygroups.compute.base import ColumnRef, Literal, lit

@pytest.fixture
def sample_batch():
    return pa.RecordBatch.from_arrays(
        [pa.array([10, 20, 5]), pa.array(['Alice', 'Clara', 'Alice'])],
        names=['nb_births', 'name']
    )

def test_function_call_expression_init():
    expr = FunctionCallExpression(pc.add, ColumnRef('nb_births'), 1)
    assert expr.func == pc.add
    assert len(expr.args) == 2
    assert isinstance(expr.args[0], ColumnRef)
    assert expr.args[1] == 1

def test_function_call_expression_str():
    expr = FunctionCallExpression(pc.add, ColumnRef('nb_births'), lit(1))
    assert str(expr) == "pyarrow.compute.add(ColumnRef(nb_births),Literal(1))"
    assert repr(expr) == str(expr)

def test_function_call_expression_apply_simple(sample_batch):
    expr = FunctionCallExpression(pc.add, ColumnRef('nb_births'), 1)
    result = expr.apply(sample_batch)
    assert result.equals(pa.array([11, 21, 6]))

def test_function_call_expression_apply_nested(sample_batch):
    inner_expr = FunctionCallExpression(pc.sum, ColumnRef('nb_births'))
    outer_expr = FunctionCallExpression(pc.subtract, ColumnRef('nb_births'), inner_expr)
    result = outer_expr.apply(sample_batch)
    assert result.equals(pa.array([-25, -15, -30]))

def test_function_call_expression_reduces_to_scalar(sample_batch):
    expr = FunctionCallExpression(pc.count_distinct, ColumnRef('name'))
    result = expr.apply(sample_batch)
    assert isinstance(result, pa.Scalar)
    assert result.as_py() == 2

def test_literal_apply(sample_batch):
    literal = Literal(2020)
    assert literal.apply(sample_batch) == pa.scalar(2020)
    assert str(literal) == "Literal(2020)"
    assert Literal(pa.scalar(1.5)).value == pa.scalar(1.5)

def test_function_call_expression_apply_null_handling(sample_batch):
    births_with_null = pa.array([1, None, 3])
    batch_with_null = pa.RecordBatch.from_arrays([births_with_null, sample_batch['name']], names=['nb_births', 'name'])
    expr = FunctionCallExpression(pc.add, ColumnRef('nb_births'), 1)
    result = expr.apply(batch_with_null)
    assert result.equals(pa.array([2, None, 4]))

def test_function_call_expression_apply_invalid_column():
    batch = pa.RecordBatch.from_arrays([pa.array([1, 2, 3])], names=['nb_births'])
    expr = FunctionCallExpression(pc.add, ColumnRef('non_existent'), 1)
    with pytest.raises(KeyError):
        expr.apply(batch)

def test_function_call_expression_apply_type_mismatch():
    batch = pa.RecordBatch.from_arrays([pa.array(['a', 'b', 'c'])], names=['name'])
    expr = FunctionCallExpression(pc.add, ColumnRef('name'), 1)
    with pytest.raises(pa.ArrowNotImplementedError):
        expr.apply(batch)
