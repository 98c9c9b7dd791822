from exclusion import ExclusionSpec, should_exclude


def test_empty_spec_excludes_nothing():
    spec = ExclusionSpec()
    assert not should_exclude({"id": "1", "name": "general"}, spec)


def test_match_by_name():
    spec = ExclusionSpec(channels=("general",))
    assert should_exclude({"id": "1", "name": "general"}, spec)


def test_match_by_id():
    spec = ExclusionSpec(channels=("42",))
    assert should_exclude({"id": "42", "name": "general"}, spec)
    assert should_exclude({"id": 42, "name": "general"}, spec)


def test_match_is_exact_and_case_sensitive():
    spec = ExclusionSpec(channels=("General", "gen*"))
    assert not should_exclude({"id": "1", "name": "general"}, spec)
    assert not should_exclude({"id": "2", "name": "general-chat"}, spec)


def test_missing_id_never_matches_literal_none():
    spec = ExclusionSpec(channels=("None",))
    assert not should_exclude({"name": "general"}, spec)


def test_from_options_uses_first_entry_with_channels():
    spec = ExclusionSpec.from_options(
        [{"roles": ["x"]}, {"channels": ["logs", 123]}, {"channels": ["other"]}]
    )
    assert spec.channels == ("logs", "123")


def test_from_options_without_channels_entry():
    assert ExclusionSpec.from_options([]).channels == ()
    assert ExclusionSpec.from_options(None).channels == ()
    assert ExclusionSpec.from_options([{"roles": ["x"]}]).channels == ()


def test_from_options_stops_at_entry_with_empty_channels():
    spec = ExclusionSpec.from_options([{"channels": []}, {"channels": ["logs"]}])
    assert spec.channels == ()
