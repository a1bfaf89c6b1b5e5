"""Query Plan nodes that load data

The datasource nodes are the leaves of every plan,
they fetch the data from some source, convert it into
Arrow format and forward it to the next node in the plan.

Which columns exist and their types is decided here,
grouping and aggregation only ever read the schema
that the data source established.
"""

import logging
from abc import abstractmethod

import pyarrow as pa
import pyarrow.csv

from .base import QueryPlanNode

log = logging.getLogger(__name__)


class DataSourceNode(QueryPlanNode):
    """Base class for nodes that load data from a source."""

    @abstractmethod
    def poll_schema(self) -> pa.Schema:
        """Poll the schema of the data source without loading its content."""
        ...


class CSVDataSource(DataSourceNode):
    """Stream the rows of a local CSV file.

    The file is read incrementally, each block of the
    file becomes a RecordBatch, so memory usage depends on
    the block size and not on the size of the file.
    Column types are inferred from the first block.
    """

    def __init__(self, filename: str, block_size: int | None = None) -> None:
        """
        :param filename: The path of the local CSV file.
        :param block_size: The number of bytes read for each batch,
                           ``None`` uses the pyarrow default.
        """
        self.filename = filename
        self.block_size = block_size

    def __str__(self) -> str:
        return f"CSVDataSource({self.filename}, block_size={self.block_size})"

    def _open(self) -> pa.csv.CSVStreamingReader:
        read_options = pa.csv.ReadOptions(block_size=self.block_size)
        return pa.csv.open_csv(self.filename, read_options=read_options)

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit one batch for each block of the file."""
        log.debug("Reading %s", self.filename)
        with self._open() as reader:
            yield from reader

    def poll_schema(self) -> pa.Schema:
        """The schema inferred from the first block of the file."""
        with self._open() as reader:
            return reader.schema


class PyArrowTableDataSource(DataSourceNode):
    """Use an in-memory :class:`pyarrow.Table` or :class:`pyarrow.RecordBatch` as input.

    The chunks of a table are emitted as separate batches,
    no data is copied.
    Tables without rows still emit one empty batch, so that
    the next nodes know the columns of the data.
    """

    def __init__(self, table: pa.Table | pa.RecordBatch) -> None:
        """
        :param table: The data to emit.
        """
        self.table = table
        self.is_recordbatch = isinstance(table, pa.RecordBatch)

    def __str__(self) -> str:
        return f"PyArrowTableDataSource(columns={self.table.column_names}, rows={self.table.num_rows})"

    def batches(self) -> QueryPlanNode.RecordBatchesGenerator:
        """Emit the batches of the table, or the record batch itself."""
        if self.is_recordbatch:
            yield self.table
            return

        batches = self.table.to_batches()
        if not batches:
            yield pa.RecordBatch.from_pylist([], schema=self.table.schema)
        else:
            yield from batches

    def poll_schema(self) -> pa.Schema:
        """The schema of the in-memory data."""
        return self.table.schema
