"""Tests for unpacking stacked paragraph designations."""

from pipeline.ecfr.splitter import MAX_INTRO_LENGTH, split_packed_paragraph


class TestSplitPackedParagraph:
    """Tests for split_packed_paragraph."""

    def test_unlabelled_text(self) -> None:
        assert split_packed_paragraph("Unless defined elsewhere:") == [
            (None, "Unless defined elsewhere:")
        ]

    def test_single_label(self) -> None:
        assert split_packed_paragraph("(a) General rule.") == [("a", "General rule.")]

    def test_heading_then_nested_paragraph(self) -> None:
        text = "(a) Definitions. (1) Driver means any person who drives."
        assert split_packed_paragraph(text) == [
            ("a", "Definitions."),
            ("1", "Driver means any person who drives."),
        ]

    def test_double_designation(self) -> None:
        text = "(b)(1) Each driver shall comply."
        assert split_packed_paragraph(text) == [
            ("b", ""),
            ("1", "Each driver shall comply."),
        ]

    def test_double_designation_with_roman(self) -> None:
        text = "(c)(ii) The carrier shall notify."
        assert split_packed_paragraph(text) == [
            ("c", ""),
            ("ii", "The carrier shall notify."),
        ]

    def test_three_deep_packing(self) -> None:
        text = "(a) Scope. (1) Applicability: (i) This part applies."
        assert split_packed_paragraph(text) == [
            ("a", "Scope."),
            ("1", "Applicability"),
            ("i", "This part applies."),
        ]

    def test_intro_then_two_numbered_items(self) -> None:
        text = "(a) Intro. (1) First. (2) Second"
        assert split_packed_paragraph(text) == [
            ("a", "Intro."),
            ("1", "First."),
            ("2", "Second"),
        ]

    def test_em_dash_intro_delimiter_removed(self) -> None:
        text = "(d) Exceptions— (1) Farm vehicles."
        assert split_packed_paragraph(text) == [
            ("d", "Exceptions"),
            ("1", "Farm vehicles."),
        ]

    def test_long_intro_is_prose(self) -> None:
        intro = "x" * MAX_INTRO_LENGTH + "."
        text = f"(a) {intro} (1) the rest of the text."
        assert split_packed_paragraph(text) == [("a", f"{intro} (1) the rest of the text.")]

    def test_parenthetical_in_prose_not_split(self) -> None:
        text = "(i) A driver of a commercial motor vehicle (including a contractor);"
        assert split_packed_paragraph(text) == [
            ("i", "A driver of a commercial motor vehicle (including a contractor);")
        ]

    def test_uppercase_outer_not_double_split(self) -> None:
        text = "(A)(1) Reserved."
        assert split_packed_paragraph(text) == [("A", "(1) Reserved.")]

    def test_bare_label(self) -> None:
        assert split_packed_paragraph("(a)") == [("a", "")]
