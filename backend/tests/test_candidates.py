import pytest

from services.candidates import extract_candidates


def test_empty_text_yields_no_candidates():
    assert extract_candidates("") == []
    assert extract_candidates("\n  \n\t\n") == []


def test_food_keyword_lines_qualify_case_insensitively():
    text = "JOE'S PIZZA\nopen late\nSushi Palace Downtown!"
    assert extract_candidates(text) == ["JOE'S PIZZA", "Sushi Palace Downtown!"]


def test_title_case_lines_qualify_within_length_bounds():
    text = "Lucali\nAb\nThe Spotted Pig\nMixed case Line\n" + "Abc " * 15
    result = extract_candidates(text)
    assert "Lucali" in result
    assert "The Spotted Pig" in result
    assert "Ab" not in result  # too short
    assert "Mixed case Line" not in result
    assert all(len(c) <= 50 for c in result if c.istitle())


def test_social_handles_and_hashtags_qualify():
    text = "@joespizzanyc\n#nycfoodie\nrandom words"
    assert extract_candidates(text) == ["@joespizzanyc", "#nycfoodie"]


def test_links_are_rejected_even_when_otherwise_matching():
    text = "https://joespizza.com\nwww.pizzaplace.com\n@pizza http\nJoe's Pizza"
    result = extract_candidates(text)
    assert result == ["Joe's Pizza"]
    assert not any("http" in c or "www" in c for c in result)


def test_lines_are_trimmed_and_deduplicated_in_first_seen_order():
    text = "  Taco Town  \nburger barn\nTaco Town\nBurger Barn\nburger barn"
    assert extract_candidates(text) == ["Taco Town", "burger barn", "Burger Barn"]


@pytest.mark.parametrize(
    "text",
    [
        "Best Pizza\nbest pizza\nBest Pizza\nhttp://best.pizza",
        "#ramen\n#ramen\n@ramen www.ramen.jp\nRamen Ya",
        "kebab\nKEBAB\nkebab \n kebab",
    ],
)
def test_output_never_contains_links_or_exact_duplicates(text):
    result = extract_candidates(text)
    assert len(result) == len(set(result))
    assert not any("http" in c or "www" in c for c in result)


def test_extraction_is_deterministic():
    text = "Cafe Luna\n@luna\nBakery & Bar\nsomething else"
    assert extract_candidates(text) == extract_candidates(text)
