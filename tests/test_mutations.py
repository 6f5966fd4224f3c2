import pytest

from finflow import mutations
from finflow.aggregation import total_income, total_spending
from finflow.default_catalog import sample_finance_data
from finflow.models import FinanceData, IncomeSource, SpendingCategory, SubCategory, Tier
from finflow.results import Outcome


def _scenario():
    # income 5000; "1" spends 1500 + 500, "2" spends 3000
    return FinanceData(
        income_sources=(
            IncomeSource(id="1", label="Salary", amount=3500),
            IncomeSource(id="2", label="Investments", amount=500),
            IncomeSource(id="3", label="Freelance", amount=1000),
        ),
        spending_categories=(
            SpendingCategory(id="1", label="Housing", sub_categories=(
                SubCategory(id="1-1", label="Rent", amount=1500),
                SubCategory(id="1-2", label="Utilities", amount=500),
            )),
            SpendingCategory(id="2", label="Other", sub_categories=(
                SubCategory(id="2-1", label="Stuff", amount=3000),
            )),
        ),
    )


def test_add_income_source():
    data = FinanceData()
    result = mutations.add_income_source(data)
    assert result.outcome is Outcome.OK
    assert len(result.data.income_sources) == 1
    src = result.data.income_sources[0]
    assert src.id == result.entity_id
    assert src.label == ""
    assert src.amount == 0
    assert data.income_sources == ()


def test_added_ids_are_fresh():
    data = FinanceData()
    for _ in range(5):
        data = mutations.add_spending_category(data).data
    ids = [c.id for c in data.spending_categories]
    assert len(set(ids)) == 5


def test_add_spending_category_defaults():
    result = mutations.add_spending_category(_scenario())
    cat = result.data.spending_categories[-1]
    assert cat.label == ""
    assert cat.amount is None
    assert cat.tier is Tier.UNALLOCATED
    assert cat.sub_categories == ()


def test_add_sub_category():
    data = _scenario()
    result = mutations.add_sub_category(data, "1")
    subs = result.data.spending_categories[0].sub_categories
    assert len(subs) == 3
    assert subs[-1].id == result.entity_id
    assert subs[-1].amount == 0
    # sibling category is shared untouched
    assert result.data.spending_categories[1] is data.spending_categories[1]


def test_add_sub_category_with_label():
    result = mutations.add_sub_category(_scenario(), "2", label="Groceries")
    assert result.data.spending_categories[1].sub_categories[-1].label == "Groceries"


def test_add_sub_category_unknown_category():
    data = _scenario()
    result = mutations.add_sub_category(data, "missing")
    assert result.outcome is Outcome.NOT_FOUND
    assert result.data is data


def test_update_income_source_amount_and_label():
    data = _scenario()
    result = mutations.update_income_source(data, "2", "amount", 750)
    assert result.data.income_sources[1].amount == 750
    result = mutations.update_income_source(result.data, "2", "name", "Dividends")
    assert result.data.income_sources[1].label == "Dividends"
    assert total_income(result.data) == 5250


def test_update_income_source_rejects_bad_amount():
    data = _scenario()
    for bad in (-1, "abc", None, float("nan")):
        result = mutations.update_income_source(data, "1", "amount", bad)
        assert result.outcome is Outcome.REJECTED
        assert result.data is data


def test_update_income_source_not_found():
    data = _scenario()
    result = mutations.update_income_source(data, "nope", "label", "x")
    assert result.outcome is Outcome.NOT_FOUND
    assert result.data is data


def test_unknown_field_raises():
    with pytest.raises(ValueError):
        mutations.update_income_source(_scenario(), "1", "colour", "red")


def test_update_spending_category_label_alias():
    data = _scenario()
    by_label = mutations.update_spending_category(data, "1", "label", "Home").data
    by_name = mutations.update_spending_category(data, "1", "name", "Home").data
    assert by_label == by_name
    assert by_label.spending_categories[0].label == "Home"


def test_update_spending_category_amount_sets_override():
    result = mutations.update_spending_category(_scenario(), "1", "amount", "1800")
    cat = result.data.spending_categories[0]
    assert cat.amount == 1800
    # spending is still derived from sub-categories
    assert total_spending(result.data) == 5000


def test_update_sub_category_label():
    result = mutations.update_sub_category(_scenario(), "1", "1-2", "name", "Power")
    assert result.data.spending_categories[0].sub_categories[1].label == "Power"


def test_update_sub_category_amount_within_income():
    data = mutations.update_income_source(_scenario(), "1", "amount", 4000).data
    result = mutations.update_sub_category(data, "1", "1-1", "amount", 2000)
    assert result.outcome is Outcome.OK
    assert result.data.spending_categories[0].sub_categories[0].amount == 2000
    assert total_spending(result.data) == 5500


def test_update_sub_category_amount_lowering_is_allowed():
    result = mutations.update_sub_category(_scenario(), "1", "1-1", "amount", 100)
    assert result.outcome is Outcome.OK
    assert total_spending(result.data) == 3600


def test_update_sub_category_exact_income_is_allowed():
    data = mutations.update_sub_category(_scenario(), "2", "2-1", "amount", 0).data
    result = mutations.update_sub_category(data, "1", "1-1", "amount", 4500)
    assert result.outcome is Outcome.OK
    assert total_spending(result.data) == total_income(result.data) == 5000


def test_update_sub_category_amount_over_income_is_rejected():
    # 3000 + 4500 + 500 = 8000 > 5000
    data = _scenario()
    result = mutations.update_sub_category(data, "1", "1-1", "amount", 4500)
    assert result.outcome is Outcome.REJECTED
    assert result.data is data
    assert "8,000.00" in result.message
    # rejecting again gives the same answer
    assert mutations.update_sub_category(result.data, "1", "1-1", "amount", 4500).data is data


def test_update_sub_category_not_found():
    data = _scenario()
    assert mutations.update_sub_category(data, "9", "1-1", "label", "x").outcome is Outcome.NOT_FOUND
    assert mutations.update_sub_category(data, "1", "9-9", "label", "x").outcome is Outcome.NOT_FOUND


def test_remove_income_source():
    data = _scenario()
    result = mutations.remove_income_source(data, "2")
    assert [s.id for s in result.data.income_sources] == ["1", "3"]
    assert mutations.remove_income_source(result.data, "2").outcome is Outcome.NOT_FOUND


def test_remove_spending_category_drops_subcategories():
    data = _scenario()
    result = mutations.remove_spending_category(data, "1")
    assert [c.id for c in result.data.spending_categories] == ["2"]
    sub_ids = [s.id for c in result.data.spending_categories for s in c.sub_categories]
    assert "1-1" not in sub_ids and "1-2" not in sub_ids
    assert total_spending(result.data) == 3000


def test_remove_spending_category_not_found():
    data = _scenario()
    result = mutations.remove_spending_category(data, "x")
    assert result.outcome is Outcome.NOT_FOUND
    assert result.data is data


def test_remove_sub_category():
    result = mutations.remove_sub_category(_scenario(), "1", "1-1")
    assert [s.id for s in result.data.spending_categories[0].sub_categories] == ["1-2"]
    assert mutations.remove_sub_category(result.data, "1", "1-1").outcome is Outcome.NOT_FOUND
    assert mutations.remove_sub_category(result.data, "x", "1-2").outcome is Outcome.NOT_FOUND


def test_max_sub_amount():
    data = sample_finance_data()
    # sample spends exactly its income, so a sub-category can only keep its amount
    assert mutations.headroom(data) == 0
    assert mutations.max_sub_amount(data, "1", "1-1") == 1500
    assert mutations.max_sub_amount(data, "missing", "1-1") == 0
