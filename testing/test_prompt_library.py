import random

from clearhead.components.prompt_library import (
    PROMPT_CATEGORIES,
    get_prompts_for_category,
    get_random_prompt,
)


def test_six_categories_of_six_prompts():
    assert [c.id for c in PROMPT_CATEGORIES] == ["work", "relationships", "self", "stress", "gratitude", "change"]
    assert all(len(c.prompts) == 6 for c in PROMPT_CATEGORIES)


def test_random_prompt_belongs_to_its_category():
    rng = random.Random(3)
    for _ in range(20):
        prompt, category = get_random_prompt(rng)
        assert prompt in category.prompts


def test_prompts_for_category():
    assert len(get_prompts_for_category("gratitude")) == 6
    assert get_prompts_for_category("unknown") == []
