import json

from aurora_builder.core.models import Document, find_node, new_node
from aurora_builder.core.models.edit_journal import EditJournal, JournalEntry
from aurora_builder.core.services.structure_editing_service import StructureEditingService


def test_record_and_serialize_roundtrip():
    journal = EditJournal()
    journal.record_edit("move", {"node_id": "b", "parent_id": "a", "index": 0})
    journal.record_edit("remove", {"node_id": "c"})

    data = journal.serialize()
    # Must survive JSON encoding
    restored = EditJournal.deserialize(json.loads(json.dumps(data)))

    assert len(restored) == 2
    assert [e.operation for e in restored.entries] == ["move", "remove"]
    assert isinstance(restored.entries[0], JournalEntry)
    assert restored.entries[0].details == {"node_id": "b", "parent_id": "a", "index": 0}


def test_replay_applies_edits_in_order(document_acb):
    journal = EditJournal()
    button = new_node("button", "Extra", {"text": "More"})
    journal.record_edit("insert", {"parent_id": None, "index": None, "node": button.to_dict()})
    journal.record_edit("move", {"node_id": "b", "parent_id": "a", "index": 0})
    journal.record_edit("set_prop", {"node_id": button.id, "key": "text", "value": "Less"})
    journal.record_edit("set_style", {"node_id": "c", "breakpoint": "mobile", "property": "gap", "value": "2px"})
    journal.record_edit("set_node_field", {"node_id": "a", "field": "aria_label", "value": "Wrapper"})

    replayed, report = journal.replay_edits(document_acb, StructureEditingService())

    assert report == {"applied": 5, "skipped": 0, "errors": []}
    assert [n.id for n in replayed.elements] == ["a", button.id]
    assert [n.id for n in replayed.elements[0].children] == ["b", "c"]
    assert find_node(replayed.elements, button.id).props["text"] == "Less"
    assert find_node(replayed.elements, "c").responsive_style["mobile"] == {"gap": "2px"}
    assert replayed.elements[0].aria_label == "Wrapper"
    # Starting document untouched
    assert [n.id for n in document_acb.elements] == ["a", "b"]


def test_replay_collects_failures_without_raising(document_acb):
    journal = EditJournal()
    journal.record_edit("teleport", {"node_id": "a"})
    journal.record_edit("move", {"parent_id": "a"})
    journal.record_edit("move", {"node_id": "a", "parent_id": "c", "index": 0})
    journal.record_edit("remove", {"node_id": "ghost"})
    journal.record_edit("insert", {"parent_id": None, "node": {"label": "Broken"}})
    journal.record_edit("move", {"node_id": "b", "parent_id": None, "index": "first"})
    journal.record_edit("remove", {"node_id": "c"})

    replayed, report = journal.replay_edits(document_acb, StructureEditingService())

    assert report["applied"] == 1
    assert report["skipped"] == 6
    assert len(report["errors"]) == 6
    assert report["errors"][0].startswith("[0]")
    assert "unsupported operation" in report["errors"][0]
    assert "missing node_id" in report["errors"][1]
    assert find_node(replayed.elements, "c") is None


def test_replayed_document_keeps_page_settings(document_acb):
    document_acb.page_meta.title = "Home"
    replayed, _ = EditJournal().replay_edits(document_acb, StructureEditingService())
    assert replayed == document_acb
    assert replayed is not document_acb
    assert replayed.elements[0] is not document_acb.elements[0]


def test_deserialize_skips_malformed_items():
    data = [
        {"operation": "remove", "details": {"node_id": "x"}, "timestamp": 1.0},
        {"operation": "remove", "details": "not-a-dict", "timestamp": 2.0},
        {"operation": 3, "details": {}, "timestamp": 3.0},
        {"operation": "remove", "details": {"node_id": "y"}},
        "garbage",
    ]
    journal = EditJournal.deserialize(data)
    assert [e.details["node_id"] for e in journal.entries] == ["x"]
    assert len(EditJournal.deserialize({"operation": "remove"})) == 0


def test_clear_journal():
    journal = EditJournal()
    journal.record_edit("remove", {"node_id": "a"})
    journal.clear_journal()
    assert len(journal) == 0
    assert journal.replay_edits(Document(), StructureEditingService())[1]["applied"] == 0


def test_rewind_hides_undone_entries_until_new_edit():
    journal = EditJournal()
    journal.record_edit("remove", {"node_id": "a"})
    journal.record_edit("remove", {"node_id": "b"})

    journal.rewind_to(1)
    assert len(journal) == 1
    assert [e.details["node_id"] for e in journal.entries] == ["a"]
    assert len(journal.serialize()) == 1

    # Redo steps forward again over the kept entry
    journal.rewind_to(2)
    assert [e.details["node_id"] for e in journal.entries] == ["a", "b"]

    journal.rewind_to(1)
    journal.record_edit("remove", {"node_id": "c"})
    assert [e.details["node_id"] for e in journal.entries] == ["a", "c"]
    journal.rewind_to(99)
    assert journal.position == 2


def test_replay_skips_rewound_entries(document_acb):
    journal = EditJournal()
    journal.record_edit("remove", {"node_id": "b"})
    journal.rewind_to(0)
    replayed, report = journal.replay_edits(document_acb, StructureEditingService())
    assert report["applied"] == 0
    assert [n.id for n in replayed.elements] == ["a", "b"]
