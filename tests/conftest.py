import pytest

from database import Disease, Doctor, Symptom, open_store


def seed(store):
    with store.session() as db:
        fever, cough, headache = Symptom(id=1, name="fever"), Symptom(id=2, name="cough"), Symptom(id=3, name="headache")
        db.add_all([fever, cough, headache])
        db.add_all([
            Disease(id=1, name="Flu", specialization="General Physician", symptoms=[fever, cough]),
            Disease(id=2, name="Migraine", specialization="Neurologist", symptoms=[headache]),
            Disease(id=3, name="Cold", specialization="General Physician", symptoms=[fever, cough, headache]),
            Disease(id=4, name="Unmapped", specialization="Nobody"),
        ])
        db.add_all([
            Doctor(id=1, name="Dr. Anjali Rao", specialization="General Physician"),
            Doctor(id=2, name="Dr. Rohit Menon", specialization="general physician"),
            Doctor(id=3, name="Dr. Vivek Iyer", specialization="Neurologist"),
        ])


@pytest.fixture
def empty_store():
    store = open_store("sqlite://")
    yield store
    store.close()


@pytest.fixture
def store(empty_store):
    seed(empty_store)
    return empty_store
