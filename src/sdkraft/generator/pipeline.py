"""The generation pipeline: from an :class:`~sdkraft.models.APIDocument` to files.

Stages run in a fixed order::

    scaffold -> models -> operations -> [tests] -> client -> report

Every artifact goes through the same steps: build its record, render it,
validate the rendered code, and write it only when validation passed.
Problems with one artifact are findings and never stop the remaining
artifacts or stages. Only a scaffolding failure aborts the run, since
nothing can be written without the directory tree.

At the end the collected report decides the outcome: any finding raises
:class:`~sdkraft.exceptions.ValidationFailedError` carrying the full
report; a clean run returns a :class:`~sdkraft.models.GenerationResult`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel

from sdkraft.exceptions import (
    FileSystemError,
    GenerationFailedError,
    TemplateError,
    ValidationFailedError,
)
from sdkraft.fs import create_directory, write_file
from sdkraft.generator.code_validator import CodeValidator
from sdkraft.generator.model_builder import ModelDataBuilder
from sdkraft.generator.operation_builder import OperationDataBuilder
from sdkraft.generator.renderer import TemplateRenderer
from sdkraft.generator.report import ValidationReport
from sdkraft.generator.types import merge_imports
from sdkraft.logging_config import configure_logging, shutdown_logging
from sdkraft.models import (
    APIDocument,
    FindingCategory,
    GenerationResult,
    GeneratorConfig,
    ModelRecord,
    OperationRecord,
    ValidationFinding,
)
from sdkraft.output import progress

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost"


class Generator:
    """Drive one or more generation runs with a fixed configuration.

    Args:
        config: The resolved configuration.
        renderer: Template renderer; built from *config* when omitted.
        validator: Artifact validator; built from *config* when omitted.

    Raises:
        TemplateError: If the default renderer cannot load its templates.
    """

    def __init__(
        self,
        config: GeneratorConfig,
        renderer: Optional[TemplateRenderer] = None,
        validator: Optional[CodeValidator] = None,
    ) -> None:
        self._config = config
        self._renderer = renderer or TemplateRenderer(
            line_length=config.code_style.max_line_length
        )
        self._validator = validator or CodeValidator(
            config.package_name, config.code_style.max_param_length
        )
        self._root = Path(config.output_dir)
        self._package = config.package_name
        self._reset()

    def _reset(self) -> None:
        self._report = ValidationReport()
        self._files: list[str] = []
        self._models: list[ModelRecord] = []
        self._operations: list[OperationRecord] = []
        self._tests = 0

    @property
    def report(self) -> ValidationReport:
        """Findings of the most recent run."""
        return self._report

    def generate(
        self,
        document: APIDocument,
        findings: Optional[Iterable[ValidationFinding]] = None,
    ) -> GenerationResult:
        """Generate the SDK for *document*.

        Args:
            document: The normalised API document.
            findings: Findings produced before generation (document checks);
                they count towards the final report.

        Returns:
            Summary of the written files when the run produced no findings.

        Raises:
            FileSystemError: If the output directories cannot be created.
            ValidationFailedError: If any finding was recorded.
        """
        self._reset()
        self._scaffold()
        log_path = configure_logging(self._root, verbose=self._config.generator.verbose)
        try:
            logger.info(
                "Generating %s (package %s) from %s %s into %s",
                self._config.display_name,
                self._package,
                document.title,
                document.version,
                self._root,
            )
            for finding in findings or ():
                self._report.add(finding)

            self._run_stage("models", self._generate_models, document)
            self._run_stage("operations", self._generate_operations, document)
            if self._config.testing.generate:
                self._run_stage("tests", self._generate_tests, document)
            self._run_stage("client", self._generate_client, document)
            return self._finish(log_path)
        finally:
            shutdown_logging()

    # ------------------------------------------------------------------ #
    # Stages
    # ------------------------------------------------------------------ #

    def _scaffold(self) -> None:
        package_dir = self._root / self._package
        directories = [
            self._root,
            package_dir,
            package_dir / "models",
            package_dir / "operations",
        ]
        if self._config.testing.generate:
            directories.append(package_dir / "tests")
        for directory in directories:
            create_directory(directory)
        progress(f"scaffold: {len(directories)} directories ready")

    def _run_stage(
        self, name: str, stage: Callable[[APIDocument], None], document: APIDocument
    ) -> None:
        logger.info("Stage %s started", name)
        try:
            stage(document)
        except Exception as exc:
            failure = GenerationFailedError(f"stage '{name}' failed: {exc}")
            logger.exception("Stage %s aborted", name)
            self._report.record(FindingCategory.GENERATED_CODE, f"stage:{name}", str(failure))
            return
        logger.info("Stage %s finished", name)

    def _generate_models(self, document: APIDocument) -> None:
        options = self._config.generator
        builder = ModelDataBuilder(
            include_validation=options.include_validation,
            include_examples=options.include_examples,
        )
        records, report = builder.build(document.schemas)
        self._report.merge(report)

        total = len(records)
        for index, record in enumerate(records, start=1):
            if self._emit("model", f"models/{record.module_name}.py", record):
                self._models.append(record)
            progress(f"models: {index}/{total}")

        self._emit("models_init", "models/__init__.py", models=self._models, title=document.title)

    def _generate_operations(self, document: APIDocument) -> None:
        builder = OperationDataBuilder(include_examples=self._config.generator.include_examples)
        available = {f".models.{m.module_name}.{m.name}" for m in self._models}
        records, report = builder.build(document, available_models=available)
        self._report.merge(report)

        self._emit("serialization", "serialization.py")
        total = len(records)
        for index, record in enumerate(records, start=1):
            if self._emit("operation", f"operations/{record.module_name}.py", record):
                self._operations.append(record)
            progress(f"operations: {index}/{total}")

        self._emit(
            "operations_init",
            "operations/__init__.py",
            operations=self._operations,
            title=document.title,
        )

    def _generate_tests(self, document: APIDocument) -> None:
        self._emit("test_helpers", "tests/conftest.py")
        total = len(self._operations)
        for index, record in enumerate(self._operations, start=1):
            if self._emit("operation_test", f"tests/{record.module_name}_test.py", record):
                self._tests += 1
            progress(f"tests: {index}/{total}")

    def _generate_client(self, document: APIDocument) -> None:
        base_url = self._config.generator.client_options.base_url
        if not base_url:
            base_url = document.servers[0] if document.servers else DEFAULT_BASE_URL
        self._emit(
            "client",
            "client.py",
            operations=self._operations,
            imports=merge_imports(*(op.imports for op in self._operations)),
            title=document.title,
            base_url=base_url,
        )
        self._emit("package_init", "__init__.py", title=document.title, version=document.version)
        progress("client: done")

    def _finish(self, log_path: Optional[Path]) -> GenerationResult:
        stats = self._renderer.cache_stats()
        if self._report:
            logger.error("Generation finished with %d findings", len(self._report))
            raise ValidationFailedError(self._report.summary(), self._report)

        logger.info(
            "Generation finished: %d files, cache %d hits / %d misses, log at %s",
            len(self._files),
            stats["hits"],
            stats["misses"],
            log_path,
        )
        return GenerationResult(
            output_dir=str(self._root),
            package_name=self._package,
            files=list(self._files),
            model_count=len(self._models),
            operation_count=len(self._operations),
            test_count=self._tests,
            cache_hits=stats["hits"],
            cache_misses=stats["misses"],
        )

    # ------------------------------------------------------------------ #
    # Artifacts
    # ------------------------------------------------------------------ #

    def _emit(
        self,
        template: str,
        relative: str,
        record: Optional[BaseModel] = None,
        **context: Any,
    ) -> bool:
        """Render, validate and write one artifact; return whether it was written."""
        location = f"{self._package}/{relative}"
        try:
            content = self._renderer.render(template, record, config=self._config, **context)
        except TemplateError as exc:
            logger.error("Rendering %s failed: %s", location, exc)
            self._report.record(FindingCategory.GENERATED_CODE, location, str(exc))
            return False

        finding = self._validator.validate(location, content)
        if finding is not None:
            logger.warning("Not writing %s: %s", location, "; ".join(finding.messages))
            self._report.add(finding)
            return False

        try:
            write_file(self._root / location, content)
        except FileSystemError as exc:
            logger.error("Writing %s failed: %s", location, exc)
            self._report.record(FindingCategory.GENERATED_CODE, location, str(exc))
            return False

        logger.debug("Wrote %s (%d bytes)", location, len(content))
        self._files.append(location)
        return True
