"""Tests for sdkraft.generator.pipeline -- end-to-end generation runs."""

from __future__ import annotations

import ast
import datetime
import importlib
import subprocess
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import httpx
import pytest

from sdkraft.exceptions import FileSystemError, ValidationFailedError
from sdkraft.generator.pipeline import Generator
from sdkraft.logging_config import LOG_FILENAME
from sdkraft.models import (
    APIDocument,
    FindingCategory,
    GeneratorConfig,
    ValidationFinding,
)
from sdkraft.parser.extractor import extract_document

PETSTORE_FILES = [
    "petstore/models/pet.py",
    "petstore/models/pets.py",
    "petstore/models/status.py",
    "petstore/models/error.py",
    "petstore/models/__init__.py",
    "petstore/serialization.py",
    "petstore/operations/list_pets.py",
    "petstore/operations/create_pets.py",
    "petstore/operations/get_pets_by_pet_id.py",
    "petstore/operations/__init__.py",
    "petstore/tests/conftest.py",
    "petstore/tests/list_pets_test.py",
    "petstore/tests/create_pets_test.py",
    "petstore/tests/get_pets_by_pet_id_test.py",
    "petstore/client.py",
    "petstore/__init__.py",
]


def _tree(root: Path) -> dict[str, bytes]:
    return {
        str(path.relative_to(root)): path.read_bytes()
        for path in sorted(root.rglob("*.py"))
    }


@pytest.fixture(autouse=True)
def _quiet(quiet_output) -> None:
    """Keep stage progress off the captured streams."""


# ---------------------------------------------------------------------------
# Clean runs
# ---------------------------------------------------------------------------


class TestCleanRun:
    """Generating the petstore fixture."""

    def test_writes_expected_files(
        self, generator_config: GeneratorConfig, petstore_document: APIDocument
    ) -> None:
        result = Generator(generator_config).generate(petstore_document)

        assert sorted(result.files) == sorted(PETSTORE_FILES)
        assert result.package_name == "petstore"
        assert result.model_count == 4
        assert result.operation_count == 3
        assert result.test_count == 3

        root = Path(generator_config.output_dir)
        for location in PETSTORE_FILES:
            assert (root / location).is_file(), location

    def test_every_file_is_valid_python(
        self, generator_config: GeneratorConfig, petstore_document: APIDocument
    ) -> None:
        Generator(generator_config).generate(petstore_document)
        for name, content in _tree(Path(generator_config.output_dir)).items():
            ast.parse(content, filename=name)

    def test_generated_content(
        self, generator_config: GeneratorConfig, petstore_document: APIDocument
    ) -> None:
        Generator(generator_config).generate(petstore_document)
        package = Path(generator_config.output_dir) / "petstore"

        pet = (package / "models" / "pet.py").read_text()
        assert "class Pet(BaseModel):" in pet
        assert "from datetime import datetime" in pet

        status = (package / "models" / "status.py").read_text()
        assert "class Status(str, Enum):" in status
        assert 'AVAILABLE = "available"' in status

        pets = (package / "models" / "pets.py").read_text()
        assert "Pets = list[Pet]" in pets

        client = (package / "client.py").read_text()
        assert "def list_pets(" in client
        assert "https://petstore.example.com/v1" in client

    def test_writes_generation_log(
        self, generator_config: GeneratorConfig, petstore_document: APIDocument
    ) -> None:
        Generator(generator_config).generate(petstore_document)
        log = (Path(generator_config.output_dir) / LOG_FILENAME).read_text()
        assert "Stage models started" in log
        assert "Generation finished" in log

    def test_base_url_override(
        self, generator_config: GeneratorConfig, petstore_document: APIDocument
    ) -> None:
        generator_config.generator.client_options.base_url = "https://api.example.com"
        Generator(generator_config).generate(petstore_document)
        client = (Path(generator_config.output_dir) / "petstore" / "client.py").read_text()
        assert "https://api.example.com" in client

    def test_tests_disabled(
        self, generator_config: GeneratorConfig, petstore_document: APIDocument
    ) -> None:
        generator_config.testing.generate = False
        result = Generator(generator_config).generate(petstore_document)

        assert result.test_count == 0
        assert not any("/tests/" in f for f in result.files)
        assert not (Path(generator_config.output_dir) / "petstore" / "tests").exists()


class TestIdempotence:
    """Identical input yields byte-identical output."""

    def test_second_run_is_byte_identical(
        self, generator_config: GeneratorConfig, petstore_document: APIDocument
    ) -> None:
        root = Path(generator_config.output_dir)
        generator = Generator(generator_config)

        first = generator.generate(petstore_document)
        before = _tree(root)
        second = generator.generate(petstore_document)
        after = _tree(root)

        assert before == after
        assert first.files == second.files
        assert second.cache_misses == first.cache_misses
        assert second.cache_hits > first.cache_hits

    def test_separate_generators_agree(
        self, tmp_path: Path, petstore_document: APIDocument
    ) -> None:
        trees = []
        for name in ("a", "b"):
            config = GeneratorConfig(
                sdk_name="Petstore SDK",
                output_dir=str(tmp_path / name),
                package_name="petstore",
            )
            Generator(config).generate(petstore_document)
            trees.append(_tree(tmp_path / name))
        assert trees[0] == trees[1]


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestFailures:
    """Partial failure and aborted runs."""

    def test_scaffold_failure_aborts(
        self, tmp_path: Path, petstore_document: APIDocument
    ) -> None:
        blocker = tmp_path / "occupied"
        blocker.write_text("not a directory")
        config = GeneratorConfig(output_dir=str(blocker), package_name="petstore")

        with pytest.raises(FileSystemError, match="Cannot create directory"):
            Generator(config).generate(petstore_document)

    def test_invalid_models_are_reported_and_others_written(
        self, generator_config: GeneratorConfig, petstore_raw: dict[str, Any]
    ) -> None:
        schemas = petstore_raw["components"]["schemas"]
        schemas["!!!"] = {"type": "object", "properties": {"a": {"type": "string"}}}
        schemas["123"] = {"type": "object", "properties": {"b": {"type": "string"}}}
        document = extract_document(petstore_raw, "3.0.3")
        generator = Generator(generator_config)

        with pytest.raises(ValidationFailedError) as exc_info:
            generator.generate(document)

        report = exc_info.value.report
        assert report is generator.report
        assert [f.path for f in report] == ["!!!", "123"]
        assert all(f.category == FindingCategory.MODEL for f in report)
        assert "generation completed with 2 validation findings" in str(exc_info.value)

        package = Path(generator_config.output_dir) / "petstore"
        assert (package / "models" / "pet.py").is_file()
        assert (package / "client.py").is_file()

    def test_incoming_findings_fail_the_run(
        self, generator_config: GeneratorConfig, petstore_document: APIDocument
    ) -> None:
        finding = ValidationFinding(
            category=FindingCategory.OPERATION,
            path="GET /pets",
            messages=("path parameter 'id' is not declared",),
        )
        with pytest.raises(ValidationFailedError) as exc_info:
            Generator(generator_config).generate(petstore_document, [finding])

        assert exc_info.value.report.findings == [finding]
        assert (Path(generator_config.output_dir) / "petstore" / "client.py").is_file()

    def test_stage_exception_becomes_finding(
        self,
        generator_config: GeneratorConfig,
        petstore_document: APIDocument,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        def explode(self, document, available_models=None):
            raise RuntimeError("boom")

        monkeypatch.setattr(
            "sdkraft.generator.pipeline.OperationDataBuilder.build", explode
        )

        with pytest.raises(ValidationFailedError) as exc_info:
            Generator(generator_config).generate(petstore_document)

        findings = exc_info.value.report.findings
        assert [f.path for f in findings] == ["stage:operations"]
        assert findings[0].category == FindingCategory.GENERATED_CODE
        assert findings[0].messages == ("stage 'operations' failed: boom",)

        package = Path(generator_config.output_dir) / "petstore"
        assert (package / "models" / "pet.py").is_file()
        assert (package / "client.py").is_file()
        assert not (package / "operations" / "list_pets.py").exists()

    def test_rejected_artifact_is_not_written(
        self,
        generator_config: GeneratorConfig,
        petstore_document: APIDocument,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        from sdkraft.generator.code_validator import CodeValidator

        original = CodeValidator.validate

        def reject_client(self, path, content):
            if str(path).endswith("client.py"):
                return ValidationFinding(
                    category=FindingCategory.GENERATED_CODE,
                    path=str(path),
                    messages=("rejected",),
                )
            return original(self, path, content)

        monkeypatch.setattr(CodeValidator, "validate", reject_client)

        with pytest.raises(ValidationFailedError) as exc_info:
            Generator(generator_config).generate(petstore_document)

        assert [f.path for f in exc_info.value.report] == ["petstore/client.py"]
        package = Path(generator_config.output_dir) / "petstore"
        assert not (package / "client.py").exists()
        assert (package / "__init__.py").is_file()


# ---------------------------------------------------------------------------
# Generated package at runtime
# ---------------------------------------------------------------------------

EDGE_RAW: dict[str, Any] = {
    "openapi": "3.0.3",
    "info": {"title": "Edge", "version": "1.0.0"},
    "paths": {
        "/events": {
            "get": {
                "responses": {
                    "200": {
                        "description": "ok",
                        "content": {
                            "application/json": {"schema": {"$ref": "#/components/schemas/Event"}}
                        },
                    }
                }
            }
        },
        "/codes": {
            "get": {
                "responses": {
                    "200": {
                        "description": "ok",
                        "content": {
                            "application/json": {"schema": {"$ref": "#/components/schemas/Code"}}
                        },
                    }
                }
            }
        },
        "/items/{itemId}/parts/{partId}": {
            "get": {
                "parameters": [
                    {"name": "itemId", "in": "path", "required": True, "schema": {"type": "integer"}}
                ],
                "responses": {"204": {"description": "empty"}},
            }
        },
        "/close": {
            "post": {"operationId": "close", "responses": {"204": {"description": "empty"}}}
        },
    },
    "components": {
        "schemas": {
            "Event": {
                "type": "object",
                "required": ["date"],
                "properties": {
                    "date": {"type": "string", "format": "date"},
                    "datetime": {"type": "string", "format": "date-time"},
                },
            },
            "Code": {
                "type": "object",
                "required": ["code"],
                "properties": {"code": {"type": "string", "pattern": "^[0-9]{3}$"}},
            },
        }
    },
}


@pytest.fixture
def edge_package(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Generate package ``edge`` and make it importable for one test."""
    output_dir = tmp_path / "out"
    config = GeneratorConfig(sdk_name="Edge SDK", output_dir=str(output_dir), package_name="edge")
    Generator(config).generate(extract_document(EDGE_RAW, "3.0.3"))

    monkeypatch.syspath_prepend(str(output_dir))
    yield output_dir / "edge"
    for name in [m for m in sys.modules if m == "edge" or m.startswith("edge.")]:
        del sys.modules[name]


class TestGeneratedPackage:
    """The generated SDK imports and talks to a mock server."""

    @staticmethod
    def _client(requests: list[httpx.Request], payload: Any = None) -> Any:
        client_module = importlib.import_module("edge.client")

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            if payload is None:
                return httpx.Response(204)
            return httpx.Response(200, json=payload)

        return client_module.Client(
            "https://api.example.test", transport=httpx.MockTransport(handler)
        )

    def test_fields_named_after_their_type(self, edge_package: Path) -> None:
        models = importlib.import_module("edge.models")

        event = models.Event.model_validate({"date": "2024-01-01", "datetime": "2024-01-01T10:00:00Z"})

        assert event.date_ == datetime.date(2024, 1, 1)
        assert event.datetime_ is not None
        assert event.model_dump(mode="json", by_alias=True, exclude_none=True)["date"] == "2024-01-01"

    def test_undeclared_path_placeholder_is_an_argument(self, edge_package: Path) -> None:
        requests: list[httpx.Request] = []
        with self._client(requests) as client:
            client.get_items_by_item_id_parts_by_part_id(item_id=7, part_id="wheel")

        assert requests[0].url.path == "/items/7/parts/wheel"

    def test_close_operation_keeps_client_close(self, edge_package: Path) -> None:
        requests: list[httpx.Request] = []
        client = self._client(requests)

        client.close_()
        client.close()

        assert [(r.method, r.url.path) for r in requests] == [("POST", "/close")]
        assert client._http.is_closed

    def test_pattern_constrained_response(self, edge_package: Path) -> None:
        requests: list[httpx.Request] = []
        with self._client(requests, {"code": "200"}) as client:
            assert client.get_codes().code == "200"

    def test_generated_tests_pass(self, edge_package: Path) -> None:
        proc = subprocess.run(
            [sys.executable, "-m", "pytest", "-q", "-p", "no:cacheprovider", str(edge_package / "tests")],
            cwd=edge_package.parent,
            text=True,
            capture_output=True,
            check=False,
        )
        assert proc.returncode == 0, proc.stdout + proc.stderr
        assert "8 passed" in proc.stdout
