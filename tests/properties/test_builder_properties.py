"""Property-based tests for command builders."""

from hypothesis import given, strategies as st

from pgembed.command import BUILDERS, OptionKind, VacuumDbBuilder

# =============================================================================
# Strategies
# =============================================================================

option_values = st.text(
    alphabet=st.characters(whitelist_categories=["L", "N"]), min_size=1, max_size=12
)

vacuumdb_settings = st.dictionaries(
    keys=st.sampled_from([option.key for option in VacuumDbBuilder.OPTIONS]),
    values=option_values,
    min_size=1,
    max_size=8,
)


def _value_for(kind: OptionKind, value: str) -> object:
    if kind is OptionKind.FLAG:
        return True
    if kind in {OptionKind.REPEAT, OptionKind.POSITIONAL}:
        return (value,)
    return value


# =============================================================================
# Rendering Properties
# =============================================================================


@given(settings=vacuumdb_settings, data=st.data())
def test_argument_order_ignores_call_order(
    settings: dict[str, str], data: st.DataObject
) -> None:
    """Property: the rendered arguments do not depend on setter call order."""
    keys = list(settings)
    shuffled = data.draw(st.permutations(keys))

    def build(order: list[str]) -> tuple[str, ...]:
        builder = VacuumDbBuilder()
        for key in order:
            builder = builder.set(key, _value_for(builder.option(key).kind, settings[key]))
        return builder.args()

    assert build(shuffled) == build(keys)


@given(settings=vacuumdb_settings)
def test_arguments_follow_declaration_order(settings: dict[str, str]) -> None:
    """Property: option flags appear in the order the builder declares them."""
    builder = VacuumDbBuilder()
    for key, value in settings.items():
        builder = builder.set(key, _value_for(builder.option(key).kind, value))

    args = builder.args()

    flags = [option.flag for option in VacuumDbBuilder.OPTIONS if option.key in settings]
    positions = [args.index(flag) for flag in flags]
    assert positions == sorted(positions)


@given(settings=vacuumdb_settings)
def test_unsetting_restores_empty_builder(settings: dict[str, str]) -> None:
    """Property: unsetting every option yields a builder equal to a fresh one."""
    builder = VacuumDbBuilder()
    for key, value in settings.items():
        builder = builder.set(key, _value_for(builder.option(key).kind, value))
    for key in settings:
        builder = builder.set(key, None)

    assert builder == VacuumDbBuilder()
    assert builder.args() == ()


@given(program=st.sampled_from(sorted(BUILDERS)))
def test_fresh_builders_render_no_arguments(program: str) -> None:
    """Property: a builder with no options set renders only its executable."""
    spec = BUILDERS[program]().build()

    assert spec.args == ()
    assert spec.argv == [program]
