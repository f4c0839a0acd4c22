from __future__ import annotations

import pytest

from exceptions import NotFoundError, ValidationException
from models import FormType, OnboardingProcess


def test_create_assigns_id_timestamp_and_default_process(companies):
    company = companies.create_or_update({"name": "Acme Logistics", "email": "hr@acme.test"})

    assert company.id
    assert company.created_at
    assert [p.name for p in company.onboarding_processes] == ["Default Process"]
    assert company.onboarding_processes[0].application_form.type == FormType.TEMPLATE
    assert companies.list()[0].id == company.id


def test_update_merges_fields_and_keeps_id_and_created_at(companies):
    original = companies.create_or_update({"name": "Acme", "address": "1 Main St", "phone": "555-0100"})

    companies.create_or_update({"id": original.id, "phone": "555-0199", "fax": "555-0101", "created_at": "1999-01-01"})
    stored = companies.get(original.id)

    assert stored.id == original.id
    assert stored.created_at == original.created_at
    assert stored.name == "Acme"
    assert stored.address == "1 Main St"
    assert stored.phone == "555-0199"
    assert stored.fax == "555-0101"
    assert len(companies.list()) == 1


def test_update_of_unknown_company_fails(companies):
    with pytest.raises(NotFoundError):
        companies.create_or_update({"id": "missing", "name": "Ghost"})


def test_get_unknown_company(companies):
    with pytest.raises(NotFoundError):
        companies.get("missing")


def test_delete_is_idempotent(companies):
    company = companies.create_or_update({"name": "Acme"})

    companies.delete(company.id)
    assert companies.list() == []
    companies.delete(company.id)
    assert companies.list() == []


def test_delete_all(companies):
    companies.create_or_update({"name": "Acme"})
    companies.create_or_update({"name": "Globex"})

    companies.delete_all()
    assert companies.list() == []


def test_add_process_requires_company_name(companies):
    company = companies.create_or_update({"address": "somewhere"})

    with pytest.raises(ValidationException):
        companies.add_onboarding_process(company.id, {"name": "Drivers"})


def test_add_process(companies):
    company = companies.create_or_update({"name": "Acme"})

    updated = companies.add_onboarding_process(company.id, OnboardingProcess(name="Drivers"))

    assert [p.name for p in updated.onboarding_processes] == ["Default Process", "Drivers"]
    assert [p.name for p in companies.get(company.id).onboarding_processes] == ["Default Process", "Drivers"]


def test_add_process_to_unknown_company(companies):
    with pytest.raises(NotFoundError):
        companies.add_onboarding_process("missing", {"name": "Drivers"})


def test_add_process_rejects_duplicate_id(companies):
    company = companies.create_or_update({"name": "Acme"})
    existing_id = company.onboarding_processes[0].id

    with pytest.raises(ValidationException):
        companies.add_onboarding_process(company.id, {"id": existing_id, "name": "Copy"})


def test_update_process_patches_nested_form(companies):
    company = companies.create_or_update({"name": "Acme"})
    process = company.onboarding_processes[0]

    updated = companies.update_process(company.id, process.id, {
        "name": "Warehouse",
        "applicationForm": {
            "type": "custom",
            "fields": [{"id": "fullName", "label": "Full Name", "type": "text", "required": True}],
        },
    })

    assert updated.id == process.id
    assert updated.name == "Warehouse"
    assert updated.application_form.id == process.application_form.id
    assert updated.application_form.name == "Default Template Form"
    assert updated.application_form.type == FormType.CUSTOM
    assert [f.id for f in updated.application_form.fields] == ["fullName"]


def test_update_process_rejects_invalid_fields(companies):
    company = companies.create_or_update({"name": "Acme"})
    process = company.onboarding_processes[0]

    with pytest.raises(ValidationException):
        companies.update_process(company.id, process.id, {
            "applicationForm": {"fields": [{"id": "role", "label": "Role", "type": "select", "required": True}]},
        })


def test_cannot_delete_the_last_process(companies):
    company = companies.create_or_update({"name": "Acme"})

    with pytest.raises(ValidationException):
        companies.delete_process(company.id, company.onboarding_processes[0].id)


def test_delete_process(companies):
    company = companies.create_or_update({"name": "Acme"})
    companies.add_onboarding_process(company.id, {"id": "drivers", "name": "Drivers"})

    updated = companies.delete_process(company.id, "drivers")

    assert [p.name for p in updated.onboarding_processes] == ["Default Process"]
    # Deleting it again changes nothing
    companies.delete_process(company.id, "drivers")


def test_required_docs(companies):
    company = companies.create_or_update({"name": "Acme"})
    process_id = company.onboarding_processes[0].id

    companies.add_required_doc(company.id, process_id, "Form I-9 (Employment Eligibility)", doc_id="i9")
    process = companies.add_required_doc(company.id, process_id, "Proof of Identity & Social Security")
    assert [d.label for d in process.required_docs] == [
        "Form I-9 (Employment Eligibility)",
        "Proof of Identity & Social Security",
    ]
    assert all(d.type == "upload" for d in process.required_docs)

    with pytest.raises(ValidationException):
        companies.add_required_doc(company.id, process_id, "Another I-9", doc_id="i9")

    process = companies.remove_required_doc(company.id, process_id, "i9")
    assert [d.label for d in process.required_docs] == ["Proof of Identity & Social Security"]


def test_resolve_process(companies):
    with pytest.raises(NotFoundError):
        companies.resolve_process()

    first = companies.create_or_update({"name": "Acme"})
    second = companies.create_or_update({"name": "Globex"})
    companies.add_onboarding_process(second.id, {"id": "globex-drivers", "name": "Drivers"})

    company, process = companies.resolve_process()
    assert company.id == first.id
    assert process.id == first.onboarding_processes[0].id

    company, process = companies.resolve_process("globex-drivers")
    assert company.id == second.id
    assert process.name == "Drivers"

    with pytest.raises(NotFoundError):
        companies.resolve_process("missing")


def test_logo_and_form_images(companies, store):
    company = companies.create_or_update({"name": "Acme"})
    process_id = company.onboarding_processes[0].id

    company = companies.set_logo(company.id, "logo.png", b"\x89PNG")
    assert company.logo.startswith("logo-acme-")
    assert store.get_blob(company.logo) == b"\x89PNG"

    process = companies.add_form_image(company.id, process_id, "page1.jpg", b"jpeg-bytes")
    key = process.application_form.images[0]
    assert key.startswith(f"form-default-process-{process_id}-")

    process = companies.remove_form_image(company.id, process_id, key)
    assert process.application_form.images == []
    with pytest.raises(NotFoundError):
        store.get_blob(key)


def test_logo_must_be_an_image(companies):
    company = companies.create_or_update({"name": "Acme"})

    with pytest.raises(ValidationException):
        companies.set_logo(company.id, "logo.exe", b"MZ")
