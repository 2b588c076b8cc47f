import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, func, text, Column, Integer, String, ForeignKey, Table, Text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker, relationship, selectinload
from sqlalchemy.pool import StaticPool

from schemas import DiseaseRecord, DoctorOption

logger = logging.getLogger(__name__)

Base = declarative_base()


class StoreUnavailableError(Exception):
    """The backing database could not be opened."""


# --- ENTITIES ---
disease_symptoms = Table(
    "DiseaseSymptoms", Base.metadata,
    Column("disease_id", Integer, ForeignKey("Diseases.disease_id"), primary_key=True),
    Column("symptom_id", Integer, ForeignKey("Symptoms.symptom_id"), primary_key=True),
)

class Symptom(Base):
    __tablename__ = "Symptoms"
    id = Column("symptom_id", Integer, primary_key=True)
    name = Column("symptom_name", String(collation="NOCASE"), unique=True, nullable=False)
    diseases = relationship("Disease", secondary=disease_symptoms, back_populates="symptoms")

class Disease(Base):
    __tablename__ = "Diseases"
    id = Column("disease_id", Integer, primary_key=True)
    name = Column("disease_name", String, nullable=False)
    specialization = Column(String)
    symptoms = relationship("Symptom", secondary=disease_symptoms, back_populates="diseases")

class Doctor(Base):
    __tablename__ = "Doctors"
    id = Column("doctor_id", Integer, primary_key=True)
    name = Column(String, nullable=False)
    specialization = Column(String)

class Patient(Base):
    __tablename__ = "Patients"
    id = Column("patient_id", Integer, primary_key=True)
    name = Column(String)
    age = Column(Integer)
    gender = Column(String)
    contact = Column(String)
    prescriptions = relationship("Prescription", back_populates="patient")

class Prescription(Base):
    __tablename__ = "Prescriptions"
    id = Column("prescription_id", Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("Patients.patient_id"), nullable=False)
    # referenced by value; 0 means unknown doctor
    disease_id = Column(Integer, nullable=False)
    doctor_id = Column(Integer, default=0)
    notes = Column(Text)
    patient = relationship("Patient", back_populates="prescriptions")


# --- ENGINE & BOOTSTRAP ---
def make_engine(database_url):
    """SQLite engine for `database_url`; other backends are refused."""
    try:
        url = make_url(database_url)
    except ArgumentError as e:
        raise StoreUnavailableError(f"Invalid database URL {database_url!r}: {e}") from e
    if url.get_backend_name() != "sqlite":
        raise StoreUnavailableError(f"Only SQLite databases are supported, got {url.get_backend_name()!r}")
    kwargs = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine

def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()

def apply_schema_file(engine, path):
    """Run an SQL schema/seed script. Returns False when absent or failing; never raises."""
    path = Path(path)
    if not path.is_file():
        logger.info("%s not found, using the database as it is", path)
        return False
    try:
        script = path.read_text(encoding="utf-8")
        raw = engine.raw_connection()
        try:
            raw.driver_connection.executescript(script)
            raw.commit()
        finally:
            raw.close()
    except (OSError, sqlite3.Error, SQLAlchemyError) as e:
        logger.error("Failed applying %s: %s", path, e)
        return False
    logger.info("Schema applied / sample data loaded from %s", path)
    return True

def open_store(database_url, schema_file=None):
    engine = make_engine(database_url)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        engine.dispose()
        raise StoreUnavailableError(f"Cannot open database {database_url}: {e}") from e

    if schema_file: apply_schema_file(engine, schema_file)
    store = HealthStore(engine)
    if not store.load_symptoms():
        logger.warning("No symptoms found in DB. Please ensure the schema file was applied.")
    return store


# --- STORE ---
class HealthStore:
    """Read/write operations used by the intake flow.

    Every call runs in its own session. Query failures are logged and come back
    as an empty result (or None for writes) so callers can treat them as
    "nothing found".
    """

    def __init__(self, engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

    @contextmanager
    def session(self):
        db = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def close(self):
        self.engine.dispose()

    # --- SYMPTOMS ---
    def load_symptoms(self):
        try:
            with self.session() as db:
                return {s.name.lower(): s.id for s in db.query(Symptom).all() if s.name}
        except SQLAlchemyError as e:
            logger.error("Loading symptoms failed: %s", e)
            return {}

    def lookup_symptom_id(self, name):
        # lowercased in Python, SQLite lower() only folds ASCII
        key = name.strip().lower()
        try:
            with self.session() as db:
                return next((s.id for s in db.query(Symptom).order_by(Symptom.id).all() if s.name and s.name.lower() == key), None)
        except SQLAlchemyError as e:
            logger.error("Symptom lookup for %r failed: %s", name, e)
            return None

    def insert_symptom(self, name):
        try:
            with self.session() as db:
                s = Symptom(name=name)
                db.add(s); db.flush()
                return s.id
        except SQLAlchemyError as e:
            logger.error("Failed to insert symptom %r: %s", name, e)
            return None

    # --- CATALOG ---
    def list_diseases_with_symptoms(self):
        try:
            with self.session() as db:
                rows = db.query(Disease).options(selectinload(Disease.symptoms)).order_by(Disease.id).all()
                return [DiseaseRecord(id=d.id, name=d.name or "", specialization=d.specialization or "",
                                      symptom_ids={s.id for s in d.symptoms}) for d in rows]
        except SQLAlchemyError as e:
            logger.error("Loading diseases failed: %s", e)
            return []

    def find_doctors_by_specialization(self, specialization):
        try:
            with self.session() as db:
                docs = db.query(Doctor).filter(func.lower(Doctor.specialization) == (specialization or "").lower())\
                    .order_by(Doctor.id).all()
                return [DoctorOption(id=d.id, name=d.name or "") for d in docs]
        except SQLAlchemyError as e:
            logger.error("Doctor lookup for %r failed: %s", specialization, e)
            return []

    # --- VISITS ---
    def insert_patient(self, patient):
        try:
            with self.session() as db:
                p = Patient(name=patient.name, age=patient.age, gender=patient.gender, contact=patient.contact)
                db.add(p); db.flush()
                return p.id
        except SQLAlchemyError as e:
            logger.error("Failed saving patient: %s", e)
            return None

    def insert_prescription(self, prescription):
        try:
            with self.session() as db:
                rx = Prescription(patient_id=prescription.patient_id, disease_id=prescription.disease_id,
                                  doctor_id=prescription.doctor_id, notes=prescription.notes)
                db.add(rx); db.flush()
                return rx.id
        except SQLAlchemyError as e:
            logger.error("Failed to save prescription: %s", e)
            return None
