"""SDK generator -- turn a parsed :class:`~sdkraft.models.APIDocument` into Python code.

This sub-package is the second half of the sdkraft pipeline: it derives
template-ready records from the document, renders them into modules,
checks the rendered code and writes the package to disk.

Typical usage::

    from sdkraft.generator import Generator
    from sdkraft.models import GeneratorConfig

    result = Generator(GeneratorConfig(output_dir="out")).generate(document)

Sub-modules:

* :mod:`~sdkraft.generator.naming` -- identifier case conversion and checks.
* :mod:`~sdkraft.generator.types` -- schema -> Python type mapping and sample
  values.
* :mod:`~sdkraft.generator.model_builder` -- schema definitions -> model
  records.
* :mod:`~sdkraft.generator.operation_builder` -- path operations ->
  operation records.
* :mod:`~sdkraft.generator.renderer` -- Jinja2 rendering, template helpers
  and the render cache.
* :mod:`~sdkraft.generator.code_validator` -- static checks on rendered code.
* :mod:`~sdkraft.generator.report` -- finding aggregation.
* :mod:`~sdkraft.generator.pipeline` -- the staged orchestrator.
"""

from sdkraft.generator.code_validator import CodeValidator
from sdkraft.generator.model_builder import ModelDataBuilder
from sdkraft.generator.operation_builder import OperationDataBuilder
from sdkraft.generator.pipeline import Generator
from sdkraft.generator.renderer import FunctionRegistry, TemplateRenderer
from sdkraft.generator.report import ValidationReport
from sdkraft.generator.types import resolve_type

__all__ = [
    "CodeValidator",
    "FunctionRegistry",
    "Generator",
    "ModelDataBuilder",
    "OperationDataBuilder",
    "TemplateRenderer",
    "ValidationReport",
    "resolve_type",
]
