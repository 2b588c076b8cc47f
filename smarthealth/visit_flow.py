"""One intake visit, from patient registration to a recorded prescription.

The steps are plain functions over a `HealthStore` so the console shell can
prompt between them; `run_visit` chains them for callers that already hold
every answer (the HTTP API, tests).
"""
import logging

from logic_engine import MAX_SHOWN, SymptomVocabulary, never_register, rank_diseases, top_candidates
from schemas import PrescriptionIn, VisitOutcome, VisitStatus

logger = logging.getLogger(__name__)


def save_patient(store, patient):
    pid = store.insert_patient(patient)
    if pid is not None: logger.info("Saved patient id = %s", pid)
    return pid

def gather_symptoms(vocabulary, text, confirm=never_register):
    return vocabulary.gather(text, confirm)

def diagnose(store, symptom_ids):
    """Rank the current catalog against the reported ids. Callers skip this for an empty set."""
    return rank_diseases(symptom_ids, store.list_diseases_with_symptoms())

def pick_candidate(shown, pick):
    if 1 <= pick <= len(shown): return shown[pick - 1]
    return None

def recommend_doctors(store, specialization):
    return store.find_doctors_by_specialization(specialization)

def resolve_doctor_id(doctors, pick, manual_id=0):
    """A listed doctor by number, the manual id for 0, otherwise unknown (0)."""
    if 1 <= pick <= len(doctors): return doctors[pick - 1].id
    if pick == 0: return max(manual_id, 0)
    return 0

def record_prescription(store, patient_id, disease_id, doctor_id, notes=""):
    rx_id = store.insert_prescription(PrescriptionIn(patient_id=patient_id, disease_id=disease_id,
                                                     doctor_id=doctor_id, notes=notes))
    if rx_id is not None: logger.info("Prescription %s saved for patient %s", rx_id, patient_id)
    return rx_id


def run_visit(store, request, confirm=never_register, vocabulary=None, max_shown=MAX_SHOWN):
    """Run a whole visit from already collected answers.

    Nothing is rolled back on an early exit: the patient row and any newly
    registered symptoms stay in the store.
    """
    pid = save_patient(store, request.patient)
    if pid is None:
        return VisitOutcome(status=VisitStatus.PATIENT_FAILED, message="Failed saving patient. Aborting visit.")

    vocabulary = vocabulary if vocabulary is not None else SymptomVocabulary(store)
    gathered = gather_symptoms(vocabulary, request.symptoms, confirm)
    out = VisitOutcome(status=VisitStatus.NO_VALID_SYMPTOMS, patient_id=pid, symptom_ids=gathered.symptom_ids,
                       registered=gathered.registered, skipped=gathered.skipped)
    if not gathered.symptom_ids:
        out.message = "No valid symptoms given. Aborting."
        return out

    ranked = diagnose(store, gathered.symptom_ids)
    if not ranked:
        out.status = VisitStatus.NO_PROBABLE_DISEASE
        out.message = "No probable disease found for given symptoms in DB."
        return out
    shown = out.candidates = top_candidates(ranked, max_shown)

    chosen = pick_candidate(shown, request.disease_pick)
    if chosen is None:
        out.status = VisitStatus.SKIPPED
        out.message = "Skipping saving prescription."
        return out
    if request.expected_disease_id is not None and chosen.disease_id != request.expected_disease_id:
        out.status = VisitStatus.CANDIDATE_CHANGED
        out.message = f"Candidate {request.disease_pick} is now {chosen.disease_name}, not the disease picked. Nothing saved."
        return out
    out.chosen = chosen

    out.doctors = recommend_doctors(store, chosen.specialization)
    out.doctor_id = resolve_doctor_id(out.doctors, request.doctor_pick, request.manual_doctor_id)
    out.prescription_id = record_prescription(store, pid, chosen.disease_id, out.doctor_id, request.notes)
    if out.prescription_id is None:
        out.status = VisitStatus.PRESCRIPTION_FAILED
        out.message = "Failed to save prescription."
    else:
        out.status = VisitStatus.RECORDED
        out.message = "Prescription saved successfully."
    return out
