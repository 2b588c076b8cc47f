import streamlit as st
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
import pandas as pd

from settings import get_config

API_URL = get_config()["api_url"]

def get_sess():
    s = requests.Session(); r = Retry(total=3, backoff_factor=0.2, status_forcelist=[502, 503]); s.mount('http://', HTTPAdapter(max_retries=r)); return s

def candidates_frame(cands):
    df = pd.DataFrame(cands)
    if df.empty: return df
    df.index = range(1, len(df) + 1)
    df["score"] = df["score"].round(1)
    return df[["disease_name", "specialization", "score", "match_count", "total_symptoms"]]\
        .rename(columns={"disease_name": "Disease", "specialization": "Specialization", "score": "Score%",
                         "match_count": "Matches", "total_symptoms": "Total"})

def current_analysis(state, symptoms):
    """The stored preview, only while the symptom text is still the one previewed."""
    if state.get('analysis') is None or state.get('previewed') != symptoms: return None
    return state['analysis']

def visit_payload(patient, previewed, pick, candidate, doctor_id, notes, register):
    """Body for POST /visits pinned to what the operator saw: the previewed text,
    the picked disease's id and the chosen doctor's id."""
    pl = {"patient": patient, "symptoms": previewed, "disease_pick": pick, "doctor_pick": 0,
          "manual_doctor_id": int(doctor_id), "notes": notes, "register_unknown": register}
    if candidate is not None: pl["expected_disease_id"] = candidate['disease_id']
    return pl


def render():
    st.set_page_config(page_title="Smart Healthcare DBMS", layout="wide", page_icon="🩺")
    for k in ['analysis', 'previewed', 'outcome']:
        if k not in st.session_state: st.session_state[k] = None
    http = get_sess()

    st.title("🏥 Smart Healthcare DBMS")
    st.caption("Disease prediction by symptom match")

    # --- PATIENT & SYMPTOMS ---
    c1, c2 = st.columns(2)
    with c1:
        name = st.text_input("Patient name"); age = st.number_input("Age", min_value=0, value=0, step=1)
        gender = st.text_input("Gender"); contact = st.text_input("Contact")
    with c2:
        symptoms = st.text_area("Symptoms (comma separated)", placeholder="fever, cough, headache")
        register = st.checkbox("Add unknown symptoms to the vocabulary")
        if st.button("🔎 Preview diagnosis"):
            try:
                res = http.post(f"{API_URL}/analyze/diseases", json={"description": symptoms})
                if res.status_code == 200:
                    st.session_state.analysis = res.json(); st.session_state.previewed = symptoms
                else: st.error(res.text)
            except requests.RequestException as e: st.error(f"Server Error: {e}")

    an = current_analysis(st.session_state, symptoms)
    if an is None and st.session_state.analysis is not None:
        st.info("Symptoms changed since the preview. Preview again before saving.")
    if an:
        if an['unknown']: st.warning(f"Not in DB: {', '.join(an['unknown'])}")
        if not an['symptoms']: st.info("No valid symptoms given.")
        elif not an['candidates']: st.info("No probable disease found for given symptoms in DB.")
        else:
            st.subheader("Probable Diseases (Ranked by Symptom Match)")
            st.dataframe(candidates_frame(an['candidates']), use_container_width=True)

    # --- PRESCRIPTION ---
    cands = an['candidates'] if an else []
    labels = ["Skip"] + [f"{i}. {c['disease_name']}" for i, c in enumerate(cands, 1)]
    pick = labels.index(st.selectbox("Disease to record prescription", labels))
    chosen = cands[pick - 1] if pick else None
    doctors = []
    if chosen:
        try: doctors = http.get(f"{API_URL}/doctors/by_specialization", params={"specialization": chosen['specialization']}).json()
        except requests.RequestException: doctors = []
        if not doctors: st.caption(f"No doctors found for specialization '{chosen['specialization']}'.")
    d_labels = ["Enter doctor id manually"] + [f"{d['name']} (ID={d['id']})" for d in doctors]
    doc_pick = d_labels.index(st.selectbox("Doctor", d_labels))
    doctor_id = doctors[doc_pick - 1]['id'] if doc_pick else st.number_input("Doctor id (0 = unknown)", min_value=0, value=0, step=1)
    notes = st.text_area("Notes / prescription")

    if st.button("💾 Save visit", disabled=an is None):
        patient = {"name": name, "age": int(age), "gender": gender, "contact": contact}
        pl = visit_payload(patient, st.session_state.previewed, pick, chosen, doctor_id, notes, register)
        try:
            res = http.post(f"{API_URL}/visits", json=pl)
            if res.status_code == 200: st.session_state.outcome = res.json()
            else: st.error(res.text)
        except requests.RequestException as e: st.error(f"Server Error: {e}")

    oc = st.session_state.outcome
    if oc:
        if oc['status'] == "recorded": st.success(f"{oc['message']} (patient {oc['patient_id']}, prescription {oc['prescription_id']})")
        else: st.warning(oc['message'] or oc['status'])
        if oc['registered']: st.info(f"Added symptoms: {', '.join(oc['registered'])}")


if __name__ == "__main__":
    render()
