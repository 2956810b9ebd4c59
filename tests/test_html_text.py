from mailterm.rendering import extract_text


def test_style_elements_and_attributes_are_removed():
    html = (
        "<html><head><style>p { color: red }</style></head>"
        "<body><p style=\"color:blue\">Hello</p></body></html>"
    )
    assert extract_text(html) == "Hello"


def test_styled_element_keeps_its_text():
    assert extract_text("<span style=\"display:none\">kept</span>") == "kept"


def test_style_content_never_leaks_from_body():
    text = extract_text("<div>before<style>.x { margin: 0 }</style>after</div>")
    assert text == "beforeafter"
    assert "margin" not in text


def test_malformed_markup_is_best_effort():
    assert extract_text("<div><p>Unclosed <b>bold") == "Unclosed bold"


def test_empty_document():
    assert extract_text("") == ""
