"""Bundle a JSON Schema and everything it references into one document."""

from json_schema_bundler.bundler import SchemaBundler, bundle_schema
from json_schema_bundler.errors import BundleError, SchemaLoadError
from json_schema_bundler.writer import WriteResult, serialize_schema, write_outputs

__version__ = "1.0.0"

__all__ = [
    "BundleError",
    "SchemaBundler",
    "SchemaLoadError",
    "WriteResult",
    "__version__",
    "bundle_schema",
    "serialize_schema",
    "write_outputs",
]
