from finflow.default_catalog import default_subcategories, suggest_category


def test_suggest_category_exact_and_fuzzy():
    assert suggest_category("Housing")[0] == "Housing"
    name, score = suggest_category("housng")
    assert name == "Housing"
    assert 60 <= score <= 100


def test_suggest_category_blank_or_unrelated():
    assert suggest_category("") == ("", 0)
    assert suggest_category("   ") == ("", 0)
    assert suggest_category("zzqqxx") == ("", 0)


def test_default_subcategories_skip_existing():
    subs = default_subcategories("Food", existing=["groceries"])
    assert "Groceries" not in subs
    assert subs == ["Dining Out", "Coffee"]
    assert default_subcategories("zzqqxx") == []
