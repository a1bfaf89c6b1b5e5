import logging

import pyarrow as pa
import pyarrow.compute as pc

from tidygroups import GroupedTable
from tidygroups.compute import (
    Across,
    ColumnSelector,
    CountDistinctAggregation,
    FunctionCallExpression,
    MeanAggregation,
    SumAggregation,
    col,
)

logging.basicConfig(level=logging.INFO)

births = GroupedTable.read_csv("data/births.csv", block_size=64 * 1024)

# Share of each name among the births of its year and sex.
shares = births.group(["year", "sex"]).mutate(
    {
        "total": FunctionCallExpression(pc.sum, col("nb_births")),
        "share": FunctionCallExpression(
            pc.divide, FunctionCallExpression(pc.cast, col("nb_births"), pa.float64()), col("total")
        ),
    }
)
print(shares.arrange(["share"], descending=[True]))

# Aggregating by (sex, year) leaves the result grouped by sex,
# so the second aggregation computes the yearly average for each sex.
yearly = births.group(["sex", "year"], sort=True).aggregate(
    {"total": SumAggregation("nb_births"), "names": CountDistinctAggregation("name")}
)
print(yearly.aggregate({"mean_total": MeanAggregation("total")}))

print(
    births.group(["sex"]).aggregate(
        across=Across(ColumnSelector.by_name("nb_births"), {"sum": SumAggregation, "mean": MeanAggregation})
    )
)
