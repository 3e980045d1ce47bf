import pytest

from helpers.documents import donor_survey_path

from survey_engine.catalog import BlockCatalog
from survey_engine.engine import SurveyEngine
from survey_engine.evaluator import ConditionEvaluator
from survey_engine.session_store import InMemorySessionStore
from survey_engine.templates import TemplateRenderer


@pytest.fixture(scope="session")
def donor_catalog():
    """The shipped donor survey, loaded once (the catalog is immutable)."""
    return BlockCatalog.load(donor_survey_path())


@pytest.fixture
def evaluator():
    return ConditionEvaluator()


@pytest.fixture
def renderer():
    return TemplateRenderer()


@pytest.fixture
def store():
    return InMemorySessionStore()


@pytest.fixture
def engine(donor_catalog, store):
    return SurveyEngine(donor_catalog, store)
