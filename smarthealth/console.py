import argparse
import logging
import sys

from database import StoreUnavailableError, open_store
from logic_engine import MAX_SHOWN, SymptomVocabulary, top_candidates
from schemas import PatientIn, VisitOutcome, VisitStatus, parse_int
from settings import configure_logging, get_config
import visit_flow

logger = logging.getLogger(__name__)

RULE = "=" * 62
THIN_RULE = "-" * 62


class IntakeShell:
    """Menu loop over `visit_flow`, reading answers from `input_fn`."""

    def __init__(self, store, vocabulary=None, input_fn=None, output=None, max_shown=MAX_SHOWN):
        self.store = store
        self.vocabulary = vocabulary if vocabulary is not None else SymptomVocabulary(store)
        self.input_fn = input_fn or input
        self.out = output or print
        self.max_shown = max_shown

    def ask(self, prompt):
        return self.input_fn(prompt)

    def ask_number(self, prompt):
        return parse_int(self.ask(prompt))

    def confirm_symptom(self, token):
        answer = self.ask(f"Symptom '{token}' not in DB. Do you want to add it? (y/n): ").strip()
        if answer[:1] in ("y", "Y"): return True
        self.out(f"Skipping symptom '{token}'")
        return False

    def run(self):
        while True:
            try:
                choice = self.ask("\nMenu:\n1) New patient visit (enter symptoms)\n2) Exit\nChoice: ").strip()
            except EOFError:
                break
            if choice == "2": break
            if choice != "1": continue
            try:
                self.visit()
            except EOFError:
                self.out("\nInput closed, visit abandoned.")
                break
        self.out("Goodbye!")

    # --- ONE VISIT ---
    def visit(self):
        patient = PatientIn(name=self.ask("Patient name: "), age=self.ask("Age: "),
                            gender=self.ask("Gender: "), contact=self.ask("Contact: "))
        pid = visit_flow.save_patient(self.store, patient)
        if pid is None:
            self.out("Failed saving patient. Aborting visit.")
            return VisitOutcome(status=VisitStatus.PATIENT_FAILED)
        self.out(f"Saved patient id = {pid}")

        line = self.ask("Enter symptoms (comma separated). Example: fever, cough, headache\nSymptoms: ")
        gathered = visit_flow.gather_symptoms(self.vocabulary, line, self.confirm_symptom)
        for name in gathered.registered:
            self.out(f"Added symptom '{name}' with id {self.vocabulary.lookup(name)}")
        out = VisitOutcome(status=VisitStatus.NO_VALID_SYMPTOMS, patient_id=pid, symptom_ids=gathered.symptom_ids,
                           registered=gathered.registered, skipped=gathered.skipped)
        if not gathered.symptom_ids:
            self.out("No valid symptoms given. Aborting.")
            return out

        ranked = visit_flow.diagnose(self.store, gathered.symptom_ids)
        if not ranked:
            self.out("No probable disease found for given symptoms in DB.")
            out.status = VisitStatus.NO_PROBABLE_DISEASE
            return out
        shown = out.candidates = top_candidates(ranked, self.max_shown)
        self.print_candidates(shown)

        chosen = visit_flow.pick_candidate(shown, self.ask_number("\nEnter the number of disease to record prescription (0 to skip): "))
        if chosen is None:
            self.out("Skipping saving prescription.")
            out.status = VisitStatus.SKIPPED
            return out
        out.chosen = chosen

        doctors = out.doctors = visit_flow.recommend_doctors(self.store, chosen.specialization)
        if not doctors:
            self.out(f"No doctors found for specialization '{chosen.specialization}'.")
            self.out("You can still save prescription with doctor_id = 0 (unknown).")
        else:
            self.out(f"Available doctors for {chosen.specialization}:")
            for i, d in enumerate(doctors, 1):
                self.out(f"{i}) {d.name} (ID={d.id})")
        pick = self.ask_number("Choose doctor number (0 to enter doctor_id manually): ")
        manual = self.ask_number("Enter doctor_id (0 = unknown): ") if pick == 0 else 0
        out.doctor_id = visit_flow.resolve_doctor_id(doctors, pick, manual)

        notes = self.ask("Enter brief notes/prescription: ")
        out.prescription_id = visit_flow.record_prescription(self.store, pid, chosen.disease_id, out.doctor_id, notes)
        if out.prescription_id is None:
            self.out("Failed to save prescription.")
            out.status = VisitStatus.PRESCRIPTION_FAILED
        else:
            self.out("Prescription saved successfully.")
            out.status = VisitStatus.RECORDED
        return out

    def print_candidates(self, shown):
        self.out("\nProbable Diseases (Ranked by Symptom Match):")
        self.out(RULE)
        self.out(f"{'No.':<5}{'Disease':<25}{'Specialization':<25}{'Score%':<10}{'Matches':<10}")
        self.out(THIN_RULE)
        for i, c in enumerate(shown, 1):
            self.out(f"{i:<5}{c.disease_name:<25}{c.specialization:<25}{c.score:<10.1f}{c.match_count:<10}")
        self.out(RULE)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Smart Healthcare DBMS (Disease Prediction)")
    parser.add_argument("--config", default=None, help="JSON config file")
    parser.add_argument("--db", default=None, help="SQLAlchemy database URL")
    parser.add_argument("--schema", default=None, help="SQL schema/seed script applied at startup")
    args = parser.parse_args(argv)

    conf = get_config(args.config)
    configure_logging(conf["log_level"])
    print("=== Smart Healthcare DBMS (Disease Prediction) ===")
    try:
        store = open_store(args.db or conf["database_url"], args.schema or conf["schema_file"])
    except StoreUnavailableError as e:
        logger.error("%s", e)
        return 1
    try:
        IntakeShell(store, max_shown=parse_int(conf["max_shown"], MAX_SHOWN)).run()
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
