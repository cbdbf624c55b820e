from browser_flow.assertions import assert_element_has_text, assert_element_is_displayed, assert_that
from browser_flow.core.prelude import context, pure
from browser_flow.core.runner import run
from browser_flow.errors import AssertionFailure
from browser_flow.selection.selector import css, element_id


def test_assert_that_accepts_plain_facts():
    state, _ = run(assert_that(True, "truth"))
    assert state.log.lines() == ["INFO: Assert truth: passed"]

    state, _ = run(context("check", assert_that(pure(False), "falsehood")))
    assert isinstance(state.errors[0], AssertionFailure)
    assert str(state.errors[0]) == "Assertion failed: falsehood (check)"


def test_element_text_assertion(page):
    state, _ = run(assert_element_has_text(css("h1"), "Welcome"), session=page)
    assert state.errors == ()

    state, _ = run(assert_element_has_text(css("h1"), "Goodbye"), session=page)
    assert str(state.errors[0]) == 'Expected css "h1" to have text "Goodbye" but found "Welcome"'


def test_element_displayed_assertion(page):
    state, _ = run(assert_element_is_displayed(element_id("hidden")), session=page)

    assert str(state.errors[0]) == 'Assertion failed: id "hidden" is displayed'
