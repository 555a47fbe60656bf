from roster_app.importer.pipeline.reconcile import EmployeeView, detect_field_changes, reconcile, unit_label
from roster_app.importer.pipeline.rows import ProcessedEmployee


def _incoming(number, name="山田 太郎", *, department="営業本部", section=None, course=None, **fields):
    fields.setdefault("position", "一般")
    return ProcessedEmployee(
        employee_number=number,
        name=name,
        department=department,
        section=section,
        course=course,
        **fields,
    )


def _view(view_id, number, name="山田 太郎", *, department="営業本部", section=None, course=None, active=True, **fields):
    fields.setdefault("position", "一般")
    return EmployeeView(
        id=view_id,
        employee_number=number,
        name=name,
        is_active=active,
        department=department,
        section=section,
        course=course,
        **fields,
    )


def test_new_unchanged_and_retired_partition():
    existing = [_view(1, "E1"), _view(2, "E2", "佐藤 花子"), _view(3, "E3", "鈴木 一郎")]
    batch = [_incoming("E1"), _incoming("E2", "佐藤 花子"), _incoming("E4", "高橋 次郎")]

    result = reconcile(batch, existing)

    assert [e.employee_number for e in result.new_employees] == ["E4"]
    assert result.unchanged == ["E1", "E2"]
    assert [v.employee_number for v in result.retired_employees] == ["E3"]
    assert result.updated_employees == []
    assert result.transferred_employees == []
    assert result.total_records == 3
    assert result.has_changes


def test_unit_change_classifies_as_transfer_even_with_other_changes():
    existing = [_view(1, "E1", department="営業本部", section="第一営業部")]
    batch = [_incoming("E1", department="営業本部", section="第二営業部", position="課長")]

    result = reconcile(batch, existing)

    assert result.updated_employees == []
    assert len(result.transferred_employees) == 1
    transfer = result.transferred_employees[0]
    assert transfer.old_unit == "営業本部 / 第一営業部"
    assert transfer.new_unit == "営業本部 / 第二営業部"
    assert {change.field for change in transfer.changes} == {"position", "section"}
    assert transfer.promoted
    assert not transfer.rejoined


def test_field_changes_carry_labels_in_table_order():
    existing = _view(1, "E1", email="old@example.com", phone="03-0000")
    incoming = _incoming("E1", email="new@example.com", phone="03-0000", position="部長")

    changes = detect_field_changes(existing, incoming)

    assert [(c.field, c.label, c.old, c.new) for c in changes] == [
        ("email", "メール", "old@example.com", "new@example.com"),
        ("position", "役職", "一般", "部長"),
    ]


def test_blank_and_none_compare_equal():
    existing = _view(1, "E1", phone="")
    incoming = _incoming("E1", phone=None)

    assert detect_field_changes(existing, incoming) == []


def test_inactive_match_by_number_is_rejoining():
    existing = [_view(1, "E1", active=False)]

    result = reconcile([_incoming("E1")], existing)

    assert result.retired_employees == []
    updated = result.updated_employees[0]
    assert updated.rejoined
    assert updated.changes[-1].field == "is_active"


def test_inactive_employee_reclaimed_by_email_with_new_number():
    existing = [_view(1, "OLD1", active=False, email="taro@example.com")]

    result = reconcile([_incoming("NEW1", email="TARO@example.com")], existing)

    assert result.new_employees == []
    updated = result.updated_employees[0]
    assert updated.existing.id == 1
    assert updated.changes[0].field == "employee_number"
    assert updated.changes[0].old == "OLD1"
    assert updated.changes[0].new == "NEW1"


def test_active_employee_is_never_matched_by_email():
    existing = [_view(1, "E1", email="shared@example.com")]

    result = reconcile([_incoming("E2", email="shared@example.com")], existing)

    assert [e.employee_number for e in result.new_employees] == ["E2"]
    assert [v.employee_number for v in result.retired_employees] == ["E1"]


def test_duplicates_are_excluded_and_not_double_counted():
    existing = [_view(1, "E1")]
    batch = [_incoming("E1"), _incoming("E1", "別人")]

    result = reconcile(batch, existing)

    assert result.unchanged == ["E1"]
    assert len(result.excluded_duplicates) == 1
    assert result.retired_employees == []
    assert result.counts()["excluded_duplicates"] == 1


def test_empty_batch_retires_everyone_active():
    existing = [_view(1, "E1"), _view(2, "E2", active=False)]

    result = reconcile([], existing)

    assert [v.employee_number for v in result.retired_employees] == ["E1"]
    assert result.total_records == 0


def test_unit_label_skips_empty_levels():
    assert unit_label("本部", None, None) == "本部"
    assert unit_label("本部", "部", "課") == "本部 / 部 / 課"
    assert unit_label(None) == ""


def test_department_move_with_same_title_is_only_a_transfer():
    existing = [_view(1, "E1", department="A", position="General")]

    result = reconcile([_incoming("E1", department="B", position="General")], existing)

    assert result.updated_employees == []
    assert [(t.old_unit, t.new_unit) for t in result.transferred_employees] == [("A", "B")]
    assert not result.transferred_employees[0].promoted
