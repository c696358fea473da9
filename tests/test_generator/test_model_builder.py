"""Tests for sdkraft.generator.model_builder."""

from __future__ import annotations

from sdkraft.generator.model_builder import ModelDataBuilder, validation_rule
from sdkraft.models import APIDocument, FindingCategory, ModelKind, SchemaNode


def _obj(required: list[str] | None = None, **properties: SchemaNode) -> SchemaNode:
    return SchemaNode(kind="object", properties=properties, required=required or [])


STRING = SchemaNode(kind="string")
INTEGER = SchemaNode(kind="integer")


# ---------------------------------------------------------------------------
# Basic records
# ---------------------------------------------------------------------------


class TestObjectModels:
    """Object definitions become pydantic model records."""

    def test_pet_scenario(self) -> None:
        records, report = ModelDataBuilder().build(
            {"Pet": _obj(["id"], id=INTEGER, name=STRING)}
        )

        assert not report
        assert len(records) == 1
        pet = records[0]
        assert pet.name == "Pet"
        assert pet.module_name == "pet"
        assert pet.kind == ModelKind.OBJECT
        assert [p.name for p in pet.properties] == ["id", "name"]

        id_prop, name_prop = pet.properties
        assert id_prop.required is True
        assert id_prop.annotation == "int"
        assert id_prop.zero_value == "0"
        assert name_prop.required is False
        assert name_prop.annotation == "Optional[str]"

    def test_wire_names_are_sanitized(self) -> None:
        records, _ = ModelDataBuilder().build({"Pet": _obj(bornAt=STRING, **{"class": STRING})})
        props = {p.wire_name: p.name for p in records[0].properties}
        assert props == {"bornAt": "born_at", "class": "class_"}

    def test_field_named_after_its_type(self) -> None:
        node = _obj(
            ["date"],
            date=SchemaNode(kind="string", format="date"),
            datetime=SchemaNode(kind="string", format="date-time"),
        )
        records, report = ModelDataBuilder().build({"Event": node})

        assert not report
        date_prop, datetime_prop = records[0].properties
        assert (date_prop.name, date_prop.wire_name, date_prop.annotation) == (
            "date_",
            "date",
            "date",
        )
        assert (datetime_prop.name, datetime_prop.annotation) == (
            "datetime_",
            "Optional[datetime]",
        )

    def test_nullable_required_property_is_optional(self) -> None:
        node = _obj(["tag"], tag=SchemaNode(kind="string", nullable=True))
        records, _ = ModelDataBuilder().build({"Pet": node})
        assert records[0].properties[0].annotation == "Optional[str]"

    def test_imports_split_between_runtime_and_models(
        self, petstore_document: APIDocument
    ) -> None:
        records, _ = ModelDataBuilder().build(petstore_document.schemas)
        pet = records[0]
        assert pet.imports == ("datetime.datetime",)
        assert pet.model_imports == (".models.status.Status",)

    def test_self_reference_is_not_imported(self) -> None:
        node = _obj(parent=SchemaNode(ref="Category"))
        records, report = ModelDataBuilder().build({"Category": node})
        assert not report
        assert records[0].model_imports == ()
        assert records[0].properties[0].annotation == "Optional[Category]"

    def test_validation_disabled(self) -> None:
        node = _obj(["name"], name=SchemaNode(kind="string", min_length=1, max_length=5))
        records, _ = ModelDataBuilder(include_validation=False).build({"Pet": node})
        prop = records[0].properties[0]
        assert prop.validation == ""
        assert prop.min_length is None
        assert prop.max_length is None

    def test_examples_disabled(self) -> None:
        records, _ = ModelDataBuilder(include_examples=False).build({"Pet": _obj(id=INTEGER)})
        assert records[0].properties[0].example == "None"


class TestOtherKinds:
    """Enums and aliases."""

    def test_string_enum(self, petstore_document: APIDocument) -> None:
        records, _ = ModelDataBuilder().build({"Status": petstore_document.schemas["Status"]})
        status = records[0]
        assert status.kind == ModelKind.ENUM
        assert [(m.name, m.value) for m in status.enum_members] == [
            ("AVAILABLE", "available"),
            ("PENDING", "pending"),
            ("SOLD", "sold"),
        ]

    def test_enum_values_without_letters(self) -> None:
        records, _ = ModelDataBuilder().build(
            {"Code": SchemaNode(kind="string", enum=["", "a-b"])}
        )
        assert [m.name for m in records[0].enum_members] == ["VALUE_0", "A_B"]

    def test_colliding_enum_values_are_a_finding(self) -> None:
        records, report = ModelDataBuilder().build(
            {"Mode": SchemaNode(kind="string", enum=["on-off", "on_off"])}
        )
        assert records == []
        assert "same member 'ON_OFF'" in report.findings[0].messages[0]

    def test_array_alias(self, petstore_document: APIDocument) -> None:
        records, _ = ModelDataBuilder().build(petstore_document.schemas)
        pets = next(r for r in records if r.name == "Pets")
        assert pets.kind == ModelKind.ALIAS
        assert pets.alias_type == "list[Pet]"
        assert pets.imports == (".models.pet.Pet",)

    def test_integer_enum_is_alias(self) -> None:
        records, _ = ModelDataBuilder().build({"Level": SchemaNode(kind="integer", enum=[1, 2])})
        assert records[0].kind == ModelKind.ALIAS
        assert records[0].alias_type == "int"


class TestNestedModels:
    """Inline objects get models of their own."""

    def test_inline_object_property(self) -> None:
        node = _obj(owner=_obj(["name"], name=STRING))
        records, report = ModelDataBuilder().build({"Pet": node})

        assert not report
        assert [r.name for r in records] == ["Pet", "PetOwner"]
        assert records[1].source == "Pet.owner"
        assert records[0].properties[0].annotation == "Optional[PetOwner]"
        assert records[0].model_imports == (".models.pet_owner.PetOwner",)

    def test_array_of_inline_objects(self) -> None:
        node = _obj(tags=SchemaNode(kind="array", items=_obj(label=STRING)))
        records, _ = ModelDataBuilder().build({"Pet": node})
        assert [r.name for r in records] == ["Pet", "PetTagsItem"]
        assert records[0].properties[0].type_name == "list[PetTagsItem]"

    def test_nested_name_clash_is_a_finding(self) -> None:
        schemas = {"PetOwner": _obj(id=INTEGER), "Pet": _obj(owner=_obj(name=STRING))}
        records, report = ModelDataBuilder().build(schemas)
        assert [r.name for r in records] == ["PetOwner"]
        assert report.findings[0].path == "Pet"
        assert "duplicate model name 'PetOwner'" in report.findings[0].messages[0]


# ---------------------------------------------------------------------------
# Partial failure
# ---------------------------------------------------------------------------


class TestPartialFailure:
    """Bad definitions are findings; the rest are still built."""

    def test_two_of_five_invalid(self) -> None:
        schemas = {
            "Pet": _obj(id=INTEGER),
            "!!!": _obj(id=INTEGER),
            "Owner": _obj(name=STRING),
            "123": _obj(id=INTEGER),
            "Tag": _obj(label=STRING),
        }

        records, report = ModelDataBuilder().build(schemas)

        assert [r.name for r in records] == ["Pet", "Owner", "Tag"]
        assert len(report) == 2
        assert [f.category for f in report] == [FindingCategory.MODEL] * 2
        assert [f.path for f in report] == ["!!!", "123"]

    def test_duplicate_pascal_names(self) -> None:
        records, report = ModelDataBuilder().build({"pet": _obj(), "Pet": _obj()})
        assert [r.source for r in records] == ["pet"]
        assert report.findings[0].messages == (
            "duplicate model name 'Pet' (already produced by 'pet')",
        )

    def test_reserved_name(self) -> None:
        records, report = ModelDataBuilder().build({"field": _obj(a=STRING)})
        assert records == []
        assert "clashes" in report.findings[0].messages[0]

    def test_field_name_collision(self) -> None:
        node = _obj(petId=STRING, pet_id=STRING, tag=STRING)
        records, report = ModelDataBuilder().build({"Pet": node})
        assert records == []
        messages = report.findings[0].messages
        assert len(messages) == 1
        assert "both map to field 'pet_id'" in messages[0]

    def test_dangling_reference_excludes_dependants(self) -> None:
        schemas = {
            "Bad": SchemaNode(kind="string", enum=["x", "X"]),
            "Holder": _obj(bad=SchemaNode(ref="Bad")),
            "Outer": _obj(holder=SchemaNode(ref="Holder")),
            "Fine": _obj(a=STRING),
        }
        records, report = ModelDataBuilder().build(schemas)
        assert [r.name for r in records] == ["Fine"]
        assert [f.path for f in report] == ["Bad", "Holder", "Outer"]
        assert report.findings[1].messages == (
            "references model 'Bad' which was not generated",
        )

    def test_every_definition_visited_once(self) -> None:
        schemas = {f"Model{i}": _obj(a=STRING) for i in range(10)}
        records, report = ModelDataBuilder().build(schemas)
        assert len(records) == 10
        assert len({r.name for r in records}) == 10
        assert not report


class TestValidationRule:
    """Constraint summary strings."""

    def test_all_parts(self) -> None:
        node = SchemaNode(
            kind="string", min_length=1, max_length=64, pattern="^a$", enum=["a", "b"]
        )
        assert validation_rule(node, True) == "required,min=1,max=64,regexp=^a$,oneof=a b"

    def test_empty(self) -> None:
        assert validation_rule(SchemaNode(kind="string"), False) == ""
