import logging

from schemas import GatheredSymptoms, MatchResult

logger = logging.getLogger(__name__)

TRIM_CHARS = " \t\n\r"
MAX_SHOWN = 5


# --- NORMALIZER ---
def clean_token(token):
    return token.strip(TRIM_CHARS)

def normalize_token(token):
    return clean_token(token).lower()

def split_symptoms(line):
    """Comma separated symptoms, trimmed; empty segments are dropped."""
    return [clean_token(seg) for seg in (line or "").split(",") if clean_token(seg)]


def always_register(token): return True
def never_register(token): return False


class SymptomVocabulary:
    """Lowercased symptom name -> id, backed by the store.

    Built once per session; symptoms registered through it are written to the
    store and become visible to every later lookup.
    """

    def __init__(self, store, names=None):
        self.store = store
        self.by_name = dict(names) if names is not None else store.load_symptoms()

    def __len__(self): return len(self.by_name)

    def __contains__(self, token): return normalize_token(token) in self.by_name

    def lookup(self, token):
        """Known id for `token`; misses are checked against the store before giving up."""
        key = normalize_token(token)
        sid = self.by_name.get(key)
        if sid is None and key:
            sid = self.store.lookup_symptom_id(key)
            if sid is not None: self.by_name[key] = sid
        return sid

    def register(self, token):
        name = clean_token(token)
        new_id = self.store.insert_symptom(name)
        if new_id is None: return None
        self.by_name[name.lower()] = new_id
        logger.info("Added symptom '%s' with id %s", name, new_id)
        return new_id

    def gather(self, line, confirm=never_register):
        """Map a symptom line to ids.

        `confirm(token)` is asked once per unknown token and decides whether
        it gets registered; declined tokens are simply left out.
        """
        result = GatheredSymptoms()
        seen, decided = set(), set()
        for token in split_symptoms(line):
            key = token.lower()
            sid = self.lookup(token)
            if sid is None:
                if key in decided: continue
                decided.add(key)
                if confirm(token):
                    sid = self.register(token)
                    if sid is None:
                        result.skipped.append(token)
                        continue
                    result.registered.append(token)
                else:
                    result.skipped.append(token)
                    continue
            if sid not in seen:
                seen.add(sid)
                result.symptom_ids.append(sid)
        return result


# --- MATCH & RANK ---
def score_disease(reported_ids, disease):
    """MatchResult for one disease, or None when it shares no symptom (or has none)."""
    total = len(disease.symptom_ids)
    if total == 0: return None
    matches = len(disease.symptom_ids & set(reported_ids))
    if matches == 0: return None
    return MatchResult(disease_id=disease.id, disease_name=disease.name, specialization=disease.specialization,
                       match_count=matches, total_symptoms=total, score=100.0 * matches / total)

def rank_diseases(reported_ids, diseases):
    """Candidates by score desc, then match count desc, then disease id asc."""
    reported = set(reported_ids)
    hits = [h for h in (score_disease(reported, d) for d in diseases) if h is not None]
    hits.sort(key=lambda h: (-h.score, -h.match_count, h.disease_id))
    return hits

def top_candidates(ranked, limit=MAX_SHOWN):
    """The first `limit` entries; at least one is always kept from a non-empty list."""
    return ranked[:max(limit, 1)]
