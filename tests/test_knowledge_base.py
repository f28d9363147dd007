import json

import pytest

from recipe_assistant.services.assistant.knowledge_base import (
    KnowledgeBase,
    Substitution,
    TechniqueInfo,
    normalize,
    singularize,
)


def test_eggs_substitutes_in_stored_order(knowledge_base):
    subs = knowledge_base.lookup_substitution("eggs")
    assert [s.name for s in subs] == ["applesauce", "flax egg", "mashed banana", "chia egg"]
    assert subs[0].ratio == "1/4 cup per egg"


@pytest.mark.parametrize("query", ["Eggs", "EGG", "egg", "an egg", "  eggs  "])
def test_substitution_case_and_plural_insensitive(knowledge_base, query):
    subs = knowledge_base.lookup_substitution(query)
    assert subs is not None
    assert subs[0].name == "applesauce"


def test_stored_key_inside_query_prefers_longest(knowledge_base):
    subs = knowledge_base.lookup_substitution("i ran out of heavy cream")
    assert subs == knowledge_base.lookup_substitution("heavy cream")


def test_query_inside_stored_key(knowledge_base):
    assert knowledge_base.lookup_substitution("chocolate") == knowledge_base.lookup_substitution(
        "chocolate chips"
    )


def test_substitution_miss_returns_none(knowledge_base):
    assert knowledge_base.lookup_substitution("unobtainium") is None
    assert knowledge_base.lookup_substitution("") is None


def test_technique_accent_insensitive(knowledge_base):
    info = knowledge_base.lookup_technique("saute")
    assert info is not None
    assert info.definition.startswith("Cook quickly")
    assert knowledge_base.lookup_technique("Sauté") == info


def test_technique_verb_forms(knowledge_base):
    assert knowledge_base.lookup_technique("deglazing").term == "deglaze"
    assert knowledge_base.lookup_technique("diced").term == "dice"
    assert knowledge_base.lookup_technique("folding").term == "fold"


def test_technique_miss(knowledge_base):
    assert knowledge_base.lookup_technique("spherify") is None


def test_find_term_in_text(knowledge_base):
    assert knowledge_base.find_term_in("Fold in the eggs and milk.") == "fold"
    assert knowledge_base.find_term_in("Serve warm.") is None


def test_tables_are_read_only(knowledge_base):
    with pytest.raises(TypeError):
        knowledge_base._substitutions["eggs"] = ()


def test_in_memory_construction():
    kb = KnowledgeBase(
        {"Butter": [Substitution("margarine", "1:1")]},
        {"Zest": TechniqueInfo("zest", "Grate the outer peel of citrus.")},
    )
    assert kb.ingredients == ["butter"]
    assert kb.terms == ["zest"]
    assert kb.lookup_substitution("butter")[0].ratio == "1:1"
    assert kb.lookup_technique("zesting").definition == "Grate the outer peel of citrus."


def test_from_file(tmp_path):
    path = tmp_path / "kb.json"
    path.write_text(json.dumps({
        "substitutions": {"buttermilk": [{"name": "milk plus lemon juice", "ratio": "1 cup + 1 tbsp"}]},
        "techniques": {"knead": {"definition": "Work dough by hand."}},
    }))
    kb = KnowledgeBase.from_file(str(path))
    assert kb.lookup_substitution("buttermilk")[0].name == "milk plus lemon juice"
    assert kb.lookup_technique("knead").example is None


def test_from_file_rejects_bad_shape(tmp_path):
    path = tmp_path / "kb.json"
    path.write_text(json.dumps({"techniques": {"knead": {"example": "no definition"}}}))
    with pytest.raises(ValueError):
        KnowledgeBase.from_file(str(path))


def test_normalize_and_singularize():
    assert normalize("The Sauté!") == "saute"
    assert singularize("tomatoes") == "tomato"
    assert singularize("berries") == "berry"
    assert singularize("glass") == "glass"
