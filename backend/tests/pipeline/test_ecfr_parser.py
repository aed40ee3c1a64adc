"""Tests for the section parser against representative eCFR markup."""

from collections.abc import Callable
from datetime import date

import pytest

from pipeline.ecfr.nodes import Node, NodeKind, make_paragraph_id, nodes_from_json
from pipeline.ecfr.parser import (
    parse_content,
    parse_fr_citation,
    parse_section_title,
    parse_section_xml,
    parse_subpart,
)


@pytest.fixture
def definitions_xml(fixture_text: Callable[[str], str]) -> str:
    return fixture_text("section_390_5.xml")


@pytest.fixture
def appendix_xml(fixture_text: Callable[[str], str]) -> str:
    return fixture_text("appendix_385_A.xml")


class TestParseSectionXml:
    """Tests for a full section with paragraphs, a table, an extract and a graphic."""

    def test_metadata(self, definitions_xml: str) -> None:
        parsed = parse_section_xml(
            definitions_xml, "390", "390.5", source_version=date(2024, 1, 2)
        )
        assert parsed.part == "390"
        assert parsed.section == "390.5"
        assert parsed.title == "Definitions."
        assert parsed.subpart_label == "B"
        assert parsed.subpart_title == "General Requirements and Information"
        assert parsed.source_version == date(2024, 1, 2)

    def test_node_order_and_ids(self, definitions_xml: str) -> None:
        nodes = parse_section_xml(definitions_xml, "390", "390.5").content
        assert [n.id for n in nodes] == [
            "p-0", "p-1", "p-2", "p-3", "p-4", "p-5", "p-6", "p-7",
            "h-8", "t-9", "p-10", "img-11",
        ]

    def test_paragraph_labels_and_levels(self, definitions_xml: str) -> None:
        nodes = parse_section_xml(definitions_xml, "390", "390.5").content
        paragraphs = [n for n in nodes if n.kind == NodeKind.PARAGRAPH]
        assert [(n.label, n.level) for n in paragraphs] == [
            (None, 0),
            ("a", 1),
            ("1", 2),
            ("2", 2),
            ("i", 3),
            ("ii", 3),
            ("b", 1),
            ("1", 2),
            (None, 0),
        ]

    def test_packed_paragraph_text(self, definitions_xml: str) -> None:
        nodes = parse_section_xml(definitions_xml, "390", "390.5").content
        assert nodes[1].text == "Definitions."
        assert nodes[2].text == (
            "Driver means any person who operates any commercial motor vehicle."
        )
        assert nodes[6].text == ""
        assert nodes[7].text == "Each motor carrier shall maintain records."

    def test_heading(self, definitions_xml: str) -> None:
        heading = parse_section_xml(definitions_xml, "390", "390.5").content[8]
        assert heading.kind == NodeKind.HEADING
        assert heading.text == "Weight classes"
        assert heading.heading_level == 1

    def test_gpotable(self, definitions_xml: str) -> None:
        table = parse_section_xml(definitions_xml, "390", "390.5").content[9]
        assert table.kind == NodeKind.TABLE
        assert table.headers == ["Class", "Gross vehicle weight rating"]
        assert table.rows == [
            ["1", "6,000 pounds or less"],
            ["2", "6,001 to 10,000 pounds"],
        ]

    def test_extract_paragraph_is_unlabelled(self, definitions_xml: str) -> None:
        quoted = parse_section_xml(definitions_xml, "390", "390.5").content[10]
        assert quoted.label is None
        assert quoted.level == 0
        assert quoted.text == "(a) This quoted paragraph keeps its own label."

    def test_graphic(self, definitions_xml: str) -> None:
        image = parse_section_xml(definitions_xml, "390", "390.5").content[11]
        assert image.kind == NodeKind.IMAGE
        assert image.src == "/graphics/EC01FE91.000"

    def test_citation_and_stray_punctuation_dropped(self, definitions_xml: str) -> None:
        nodes = parse_section_xml(definitions_xml, "390", "390.5").content
        assert all("80 FR" not in n.text for n in nodes)
        assert all(n.text != "." for n in nodes)

    def test_deterministic(self, definitions_xml: str) -> None:
        first = parse_section_xml(definitions_xml, "390", "390.5")
        second = parse_section_xml(definitions_xml, "390", "390.5")
        assert first.content_json() == second.content_json()

    def test_content_json_round_trips(self, definitions_xml: str) -> None:
        parsed = parse_section_xml(definitions_xml, "390", "390.5")
        assert nodes_from_json(parsed.content_json()) == parsed.content


class TestParseFrCitation:
    """Tests for the source-note citation."""

    def test_single_citation(self, definitions_xml: str) -> None:
        assert parse_fr_citation(definitions_xml) == "80 FR 59074"

    def test_latest_amendment_wins(self) -> None:
        xml = "<CITA>[80 FR 59074, Oct. 1, 2015, as amended at 88 FR 1234, Jan. 9, 2023]</CITA>"
        assert parse_fr_citation(xml) == "88 FR 1234"

    def test_no_source_note(self, appendix_xml: str) -> None:
        assert parse_fr_citation(appendix_xml) is None


class TestParseAppendix:
    """Tests for DIV9 appendix markup."""

    def test_title_without_section_sign(self, appendix_xml: str) -> None:
        assert parse_section_title(appendix_xml) == (
            "Appendix A to Part 385—Explanation of Safety Audit Evaluation Criteria"
        )

    def test_no_subpart(self, appendix_xml: str) -> None:
        assert parse_subpart(appendix_xml) == (None, None)

    def test_content(self, appendix_xml: str) -> None:
        nodes = parse_section_xml(appendix_xml, "385", "385-appA").content
        assert [n.kind for n in nodes] == [
            NodeKind.PARAGRAPH,
            NodeKind.TABLE,
            NodeKind.IMAGE,
        ]
        assert nodes[0].text == "I. General"
        assert nodes[0].label is None

    def test_html_table(self, appendix_xml: str) -> None:
        table = parse_section_xml(appendix_xml, "385", "385-appA").content[1]
        assert table.headers == ["Factor", "Weight"]
        assert table.rows == [["General", "1"], ["Driver", "2"]]

    def test_absolute_image_kept(self, appendix_xml: str) -> None:
        image = parse_section_xml(appendix_xml, "385", "385-appA").content[2]
        assert image.src == "https://www.ecfr.gov/graphics/ec01fe91.001.gif"
        assert image.caption == "Figure 1"


class TestParseContentEdges:
    """Tests for degraded and minimal inputs."""

    def test_empty_input(self) -> None:
        assert parse_content("") == []

    def test_unstructured_text_falls_back(self) -> None:
        nodes = parse_content("<DIV8><NOTE>Only a note here.</NOTE></DIV8>")
        assert nodes == [
            Node(id="p-0", kind=NodeKind.PARAGRAPH, text="Only a note here.", level=0)
        ]

    def test_html_table_header_row_without_thead(self) -> None:
        nodes = parse_content(
            "<TABLE><TR><TH>A</TH><TH>B</TH></TR><TR><TD>1</TD><TD>2</TD></TR></TABLE>"
        )
        assert nodes[0].headers == ["A", "B"]
        assert nodes[0].rows == [["1", "2"]]

    def test_heading_level_clamped(self) -> None:
        nodes = parse_content('<HD SOURCE="HD5">Deep heading</HD>')
        assert nodes[0].heading_level == 3

    def test_flush_paragraph_labelled(self) -> None:
        nodes = parse_content('<FP SOURCE="FP-2">(a) Flush text.</FP>')
        assert (nodes[0].label, nodes[0].level) == ("a", 1)

    def test_unusual_digit_label_does_not_raise(self) -> None:
        xml = (
            "<DIV8><P>(1) First item text.</P><P>(A) Aside text.</P>"
            "<P>(\u00b2) Odd label text.</P></DIV8>"
        )
        parsed = parse_section_xml(xml, "390", "390.5")
        assert [(n.label, n.level) for n in parsed.content] == [
            ("1", 2),
            ("A", 4),
            ("\u00b2", 1),
        ]

    def test_graphic_without_gid_skipped(self) -> None:
        assert parse_content("<GPH><P>x</P></GPH>") == [
            Node(id="p-0", kind=NodeKind.PARAGRAPH, text="x", level=0)
        ]


class TestMakeParagraphId:
    """Tests for anchor id derivation."""

    def test_labelled(self) -> None:
        assert make_paragraph_id("390.5", "b", 7) == "390.5-b"

    def test_parenthesized_label(self) -> None:
        assert make_paragraph_id("390.5", "(ii)", 3) == "390.5-ii"

    def test_unlabelled_uses_index(self) -> None:
        assert make_paragraph_id("385-appA", None, 4) == "385-appA-p4"

    def test_empty_label_uses_index(self) -> None:
        assert make_paragraph_id("390.5", "()", 2) == "390.5-p2"

    def test_node_serialization_omits_other_kinds_fields(self) -> None:
        node = Node(id="h-0", kind=NodeKind.HEADING, text="T", heading_level=2)
        assert node.to_dict() == {
            "id": "h-0",
            "type": "heading",
            "text": "T",
            "level": 0,
            "heading_level": 2,
        }
