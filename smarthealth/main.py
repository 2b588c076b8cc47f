from typing import List

from fastapi import FastAPI, Depends, HTTPException
from pydantic import BaseModel

from database import HealthStore, open_store
from logic_engine import SymptomVocabulary, always_register, never_register, split_symptoms, rank_diseases, top_candidates
from schemas import DiseaseRecord, DoctorOption, MatchResult, PatientIn, PrescriptionIn, VisitOutcome, VisitRequest, parse_int
from settings import configure_logging, get_config
from visit_flow import run_visit

config = get_config()
configure_logging(config["log_level"])
MAX_SHOWN = parse_int(config["max_shown"], 5)

app = FastAPI(title="Smart Healthcare DBMS")
_store = None

def get_store() -> HealthStore:
    global _store
    if _store is None: _store = open_store(config["database_url"], config["schema_file"])
    return _store

# --- DTOs ---
class SymptomInput(BaseModel): description: str
class AnalysisResult(BaseModel): symptoms: List[int]; unknown: List[str]; candidates: List[MatchResult]
class VisitModel(VisitRequest): register_unknown: bool = False

# --- CATALOG ---
@app.get("/symptoms/all")
def get_symptoms(store: HealthStore = Depends(get_store)):
    return [{"id": sid, "name": name} for name, sid in sorted(store.load_symptoms().items(), key=lambda x: x[1])]

@app.get("/diseases/all", response_model=List[DiseaseRecord])
def get_diseases(store: HealthStore = Depends(get_store)): return store.list_diseases_with_symptoms()

@app.get("/doctors/by_specialization", response_model=List[DoctorOption])
def get_doctors(specialization: str, store: HealthStore = Depends(get_store)):
    return store.find_doctors_by_specialization(specialization)

@app.post("/analyze/diseases", response_model=AnalysisResult)
def analyze(i: SymptomInput, store: HealthStore = Depends(get_store)):
    vocab = SymptomVocabulary(store)
    ids, unknown = [], []
    for token in split_symptoms(i.description):
        sid = vocab.lookup(token)
        if sid is None:
            if token not in unknown: unknown.append(token)
        elif sid not in ids: ids.append(sid)
    if not ids: return AnalysisResult(symptoms=[], unknown=unknown, candidates=[])
    ranked = rank_diseases(ids, store.list_diseases_with_symptoms())
    return AnalysisResult(symptoms=ids, unknown=unknown, candidates=top_candidates(ranked, MAX_SHOWN))

# --- VISITS ---
@app.post("/patients")
def add_patient(p: PatientIn, store: HealthStore = Depends(get_store)):
    pid = store.insert_patient(p)
    if pid is None: raise HTTPException(500, "Failed saving patient")
    return {"id": pid}

@app.post("/prescriptions")
def add_prescription(rx: PrescriptionIn, store: HealthStore = Depends(get_store)):
    rid = store.insert_prescription(rx)
    if rid is None: raise HTTPException(500, "Failed to save prescription")
    return {"id": rid}

@app.post("/visits", response_model=VisitOutcome)
def visit(v: VisitModel, store: HealthStore = Depends(get_store)):
    policy = always_register if v.register_unknown else never_register
    return run_visit(store, v, confirm=policy, max_shown=MAX_SHOWN)
