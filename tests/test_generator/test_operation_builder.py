"""Tests for sdkraft.generator.operation_builder."""

from __future__ import annotations

from typing import Any

import pytest

from sdkraft.generator.operation_builder import (
    OperationDataBuilder,
    choose_media_type,
    operation_name,
)
from sdkraft.models import (
    APIDocument,
    FindingCategory,
    HTTPMethod,
    OperationRecord,
    ParameterLocation,
)
from sdkraft.parser.extractor import extract_document


def _document(paths: dict[str, Any], **extra: Any) -> APIDocument:
    return extract_document({"openapi": "3.0.3", "paths": paths, **extra}, "3.0.3")


def _ok(**content: Any) -> dict[str, Any]:
    response: dict[str, Any] = {"description": "ok"}
    if content:
        response["content"] = content
    return {"200": response}


@pytest.fixture
def petstore_operations(petstore_document: APIDocument) -> dict[str, OperationRecord]:
    records, report = OperationDataBuilder().build(petstore_document)
    assert not report
    return {record.name: record for record in records}


# ---------------------------------------------------------------------------
# Naming
# ---------------------------------------------------------------------------


class TestOperationName:
    """Name derivation from operationId or verb + path."""

    def test_synthesized_from_path(self) -> None:
        assert operation_name(HTTPMethod.GET, "/pets/{petId}") == "GetPetsByPetId"

    def test_stable_across_calls(self) -> None:
        names = {operation_name(HTTPMethod.GET, "/pets/{petId}") for _ in range(5)}
        assert names == {"GetPetsByPetId"}

    def test_explicit_operation_id(self) -> None:
        assert operation_name(HTTPMethod.GET, "/pets", "listPets") == "ListPets"
        assert operation_name(HTTPMethod.GET, "/pets", "list_pets") == "ListPets"

    def test_nested_path_segments(self) -> None:
        name = operation_name(HTTPMethod.DELETE, "/stores/{store_id}/pet-items/{itemId}")
        assert name == "DeleteStoresByStoreIdPetItemsByItemId"

    def test_root_path(self) -> None:
        assert operation_name(HTTPMethod.HEAD, "/") == "Head"


class TestChooseMediaType:
    """Deterministic tie-break between declared media types."""

    def test_json_wins(self) -> None:
        assert choose_media_type(["application/xml", "application/json"]) == "application/json"

    def test_lexicographic_otherwise(self) -> None:
        assert choose_media_type(["text/plain", "application/xml"]) == "application/xml"

    def test_order_does_not_matter(self) -> None:
        first = choose_media_type(["text/csv", "application/x-yaml"])
        second = choose_media_type(["application/x-yaml", "text/csv"])
        assert first == second == "application/x-yaml"

    def test_empty(self) -> None:
        assert choose_media_type([]) is None


# ---------------------------------------------------------------------------
# Petstore records
# ---------------------------------------------------------------------------


class TestPetstoreOperations:
    """Records built for the fixture document."""

    def test_emission_order(self, petstore_document: APIDocument) -> None:
        records, _ = OperationDataBuilder().build(petstore_document)
        assert [r.name for r in records] == ["ListPets", "CreatePets", "GetPetsByPetId"]

    def test_get_pet_by_id(self, petstore_operations: dict[str, OperationRecord]) -> None:
        op = petstore_operations["GetPetsByPetId"]
        assert op.function_name == "get_pets_by_pet_id"
        assert op.module_name == "get_pets_by_pet_id"
        assert op.method == HTTPMethod.GET
        assert op.path == "/pets/{petId}"
        assert op.has_path_params is True
        assert op.has_query_params is True
        assert op.has_header_params is False
        assert op.return_type == "Pet"
        assert op.imports == (".models.pet.Pet",)
        assert op.sample_response == "{'id': 1, 'name': 'example'}"

    def test_path_parameter(self, petstore_operations: dict[str, OperationRecord]) -> None:
        pet_id = petstore_operations["GetPetsByPetId"].parameters[0]
        assert pet_id.name == "petId"
        assert pet_id.arg_name == "pet_id"
        assert pet_id.location == ParameterLocation.PATH
        assert pet_id.required is True
        assert pet_id.annotation == "str"
        assert pet_id.example == '"example"'
        assert pet_id.zero_value == '""'

    def test_list_pets(self, petstore_operations: dict[str, OperationRecord]) -> None:
        op = petstore_operations["ListPets"]
        assert op.return_type == "Pets"
        assert op.sample_response == "[]"
        assert op.authentication is True
        assert op.has_query_params is True
        assert op.has_header_params is True
        assert op.has_path_params is False
        assert [(p.arg_name, p.annotation) for p in op.parameters] == [
            ("limit", "Optional[int]"),
            ("x_request_id", "Optional[str]"),
        ]

    def test_responses_are_status_sorted(
        self, petstore_operations: dict[str, OperationRecord]
    ) -> None:
        responses = petstore_operations["ListPets"].responses
        assert [(r.status_code, r.type_name) for r in responses] == [
            ("200", "Pets"),
            ("default", "Error"),
        ]

    def test_void_response(self, petstore_operations: dict[str, OperationRecord]) -> None:
        op = petstore_operations["CreatePets"]
        assert op.return_type == "None"
        assert op.success_status == "201"
        assert op.sample_response == "None"
        assert op.responses[0].type_name == "None"
        assert op.responses[0].media_type is None

    def test_request_body_prefers_json(
        self, petstore_operations: dict[str, OperationRecord]
    ) -> None:
        body = petstore_operations["CreatePets"].request_body
        assert body is not None
        assert body.media_type == "application/json"
        assert body.type_name == "Pet"
        assert body.required is True
        assert body.example == "{'id': 1, 'name': 'example'}"

    def test_empty_security_disables_authentication(
        self, petstore_operations: dict[str, OperationRecord]
    ) -> None:
        assert petstore_operations["CreatePets"].authentication is False


# ---------------------------------------------------------------------------
# Edge cases
# ---------------------------------------------------------------------------


class TestEdgeCases:
    """Unusual operations and partial failure."""

    def test_verb_order_is_fixed(self) -> None:
        verbs = ["options", "patch", "delete", "get", "head", "put", "post"]
        document = _document({"/x": {verb: {"responses": _ok()} for verb in verbs}})
        records, _ = OperationDataBuilder().build(document)
        assert [r.method.value for r in records] == [
            "get", "post", "put", "delete", "patch", "head", "options",
        ]

    def test_missing_responses_is_void(self) -> None:
        records, report = OperationDataBuilder().build(_document({"/ping": {"get": {}}}))
        assert not report
        assert records[0].return_type == "None"
        assert records[0].responses == ()

    def test_lowest_success_status_wins(self) -> None:
        responses = {
            "204": {"description": "empty"},
            "202": {
                "description": "accepted",
                "content": {"application/json": {"schema": {"type": "string"}}},
            },
        }
        records, _ = OperationDataBuilder().build(
            _document({"/jobs": {"post": {"responses": responses}}})
        )
        assert records[0].return_type == "str"
        assert records[0].success_status == "202"

    def test_inline_body_object_is_open_mapping(self) -> None:
        body = {
            "content": {
                "application/json": {
                    "schema": {"type": "object", "properties": {"a": {"type": "string"}}}
                }
            }
        }
        records, _ = OperationDataBuilder().build(
            _document({"/x": {"post": {"requestBody": body, "responses": _ok()}}})
        )
        assert records[0].request_body.type_name == "dict[str, Any]"
        assert records[0].request_body.required is False

    def test_body_without_media_type_is_a_finding(self) -> None:
        document = _document(
            {"/x": {"post": {"requestBody": {"content": {}}, "responses": _ok()}}}
        )
        records, report = OperationDataBuilder().build(document)
        assert records == []
        assert report.findings[0].messages == ("request body declares no media type",)

    def test_cookie_parameters_are_skipped(self) -> None:
        params = [
            {"name": "session", "in": "cookie", "schema": {"type": "string"}},
            {"name": "q", "in": "query", "schema": {"type": "string"}},
        ]
        records, _ = OperationDataBuilder().build(
            _document({"/x": {"get": {"parameters": params, "responses": _ok()}}})
        )
        assert [p.name for p in records[0].parameters] == ["q"]

    def test_reserved_argument_names(self) -> None:
        params = [
            {"name": "client", "in": "query", "schema": {"type": "string"}},
            {"name": "url", "in": "header", "schema": {"type": "string"}},
        ]
        records, _ = OperationDataBuilder().build(
            _document({"/x": {"get": {"parameters": params, "responses": _ok()}}})
        )
        assert [p.arg_name for p in records[0].parameters] == ["client_", "url_"]

    def test_reserved_function_names(self) -> None:
        document = _document(
            {
                "/close": {"post": {"operationId": "close", "responses": _ok()}},
                "/encode": {"get": {"operationId": "encode", "responses": _ok()}},
            }
        )
        records, report = OperationDataBuilder().build(document)
        assert not report
        assert [(r.name, r.function_name, r.module_name) for r in records] == [
            ("Close", "close_", "close"),
            ("Encode", "encode_", "encode"),
        ]

    def test_undeclared_path_placeholder(self) -> None:
        params = [{"name": "itemId", "in": "path", "required": True, "schema": {"type": "integer"}}]
        document = _document(
            {"/items/{itemId}/parts/{partId}": {"get": {"parameters": params, "responses": _ok()}}}
        )
        records, report = OperationDataBuilder().build(document)

        assert not report
        item_id, part_id = records[0].parameters
        assert (item_id.arg_name, item_id.annotation) == ("item_id", "int")
        assert part_id.name == "partId"
        assert part_id.arg_name == "part_id"
        assert part_id.location == ParameterLocation.PATH
        assert part_id.required is True
        assert part_id.annotation == "str"
        assert records[0].has_path_params is True

    def test_pattern_without_example_has_no_sample_response(self) -> None:
        schema = {
            "type": "object",
            "required": ["code"],
            "properties": {"code": {"type": "string", "pattern": "^[0-9]{3}$"}},
        }
        records, _ = OperationDataBuilder().build(
            _document({"/codes": {"get": {"responses": _ok(**{"application/json": {"schema": schema}})}}})
        )
        assert records[0].sample_response == "None"

    def test_duplicate_argument_is_a_finding(self) -> None:
        params = [
            {"name": "pet-id", "in": "query", "schema": {"type": "string"}},
            {"name": "petId", "in": "header", "schema": {"type": "string"}},
        ]
        records, report = OperationDataBuilder().build(
            _document({"/x": {"get": {"parameters": params, "responses": _ok()}}})
        )
        assert records == []
        assert "both map to argument 'pet_id'" in report.findings[0].messages[0]

    def test_duplicate_names_keep_first(self) -> None:
        document = _document(
            {
                "/a": {"get": {"operationId": "fetch", "responses": _ok()}},
                "/b": {"get": {"operationId": "Fetch", "responses": _ok()}},
            }
        )
        records, report = OperationDataBuilder().build(document)
        assert [r.path for r in records] == ["/a"]
        assert report.findings[0].path == "GET /b"
        assert report.findings[0].messages == (
            "duplicate operation name 'Fetch' (already used by GET /a)",
        )

    def test_invalid_operation_id(self) -> None:
        document = _document(
            {
                "/a": {"get": {"operationId": "!!!", "responses": _ok()}},
                "/b": {"get": {"responses": _ok()}},
            }
        )
        records, report = OperationDataBuilder().build(document)
        assert [r.name for r in records] == ["GetB"]
        assert report.findings[0].category == FindingCategory.OPERATION
        assert report.findings[0].path == "GET /a"

    def test_unavailable_model_excludes_operation(self, petstore_document: APIDocument) -> None:
        available = {".models.pets.Pets", ".models.error.Error"}
        records, report = OperationDataBuilder().build(petstore_document, available)
        assert [r.name for r in records] == ["ListPets"]
        assert [f.path for f in report] == ["POST /pets", "GET /pets/{petId}"]
        assert report.findings[0].messages == (
            "references model 'Pet' which was not generated",
        )

    def test_global_security_applies(self) -> None:
        document = _document(
            {"/x": {"get": {"responses": _ok()}}}, security=[{"oauth": ["read"]}]
        )
        records, _ = OperationDataBuilder().build(document)
        assert records[0].authentication is True

    def test_examples_disabled(self, petstore_document: APIDocument) -> None:
        records, _ = OperationDataBuilder(include_examples=False).build(petstore_document)
        create = next(r for r in records if r.name == "CreatePets")
        assert create.request_body.example == "None"
        assert all(p.example == "None" for r in records for p in r.parameters)
