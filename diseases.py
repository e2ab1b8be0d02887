# diseases.py
# Closed disease set known to the classifier, with per-confidence advice.

DISEASES = {
    "dengue": {
        "name": "Dengue Fever",
        "symptoms": ["high fever", "severe headache", "pain behind the eyes", "joint pain", "rash"],
        "advice": {
            "high": "High probability of dengue. Seek medical attention immediately. Get a blood test (NS1 antigen, platelet count). Stay hydrated and rest.",
            "medium": "Possible dengue infection. Monitor symptoms closely. If fever persists for more than 3 days or symptoms worsen, consult a doctor.",
            "low": "Low probability, but watch for high fever, severe headache, pain behind the eyes, joint or muscle pain and rash.",
        },
    },
    "malaria": {
        "name": "Malaria",
        "symptoms": ["fever", "chills", "headache", "sweating"],
        "advice": {
            "high": "High probability of malaria. Immediate medical attention required. A blood smear test is needed to start antimalarial treatment.",
            "medium": "Possible malaria. Get tested if fever with chills or sweating persists, especially in mosquito-prone areas.",
            "low": "Low probability. Monitor for periodic fever cycles, chills and sweating.",
        },
    },
    "covid": {
        "name": "COVID-19",
        "symptoms": ["fever", "dry cough", "tiredness", "loss of taste or smell"],
        "advice": {
            "high": "High probability of COVID-19. Self-isolate immediately, get an RT-PCR test and monitor oxygen levels. Seek help if breathing is difficult.",
            "medium": "Possible COVID-19. Get tested, wear a mask and isolate from others while you monitor symptoms.",
            "low": "Low probability. Keep practising precautions: mask, distancing, hygiene.",
        },
    },
    "tuberculosis": {
        "name": "Tuberculosis (TB)",
        "symptoms": ["persistent cough", "weight loss", "night sweats", "fever"],
        "advice": {
            "high": "High probability of TB. Urgent medical consultation needed. Sputum test and X-ray required.",
            "medium": "Possible TB. If a cough lasts more than 2 weeks or brings up blood, get tested. TB is curable with proper treatment.",
            "low": "Low probability. Watch for persistent cough, night sweats and weight loss.",
        },
    },
    "typhoid": {
        "name": "Typhoid",
        "symptoms": ["prolonged fever", "stomach pain", "weakness"],
        "advice": {
            "high": "High probability of typhoid. Medical attention required. A blood culture test is needed before antibiotics.",
            "medium": "Possible typhoid. Monitor the fever pattern and get a Widal test if fever persists for more than 5 days.",
            "low": "Low probability. Watch for prolonged fever, stomach pain and weakness.",
        },
    },
    "cholera": {
        "name": "Cholera",
        "symptoms": ["severe diarrhea", "dehydration", "vomiting"],
        "advice": {
            "high": "High probability of cholera. EMERGENCY! Go to a hospital for rehydration immediately; dehydration can be life-threatening.",
            "medium": "Possible cholera. Seek medical help. ORS (oral rehydration solution) is urgently needed.",
            "low": "Low probability. If severe diarrhea develops, seek medical help immediately.",
        },
    },
    "flu": {
        "name": "Influenza",
        "symptoms": ["cough", "sore throat", "fever", "body ache"],
        "advice": {
            "high": "High probability of influenza. Rest, drink fluids and use fever reducers. See a doctor if symptoms worsen.",
            "medium": "Possible flu. Rest, stay hydrated and monitor your temperature. It usually resolves in 7-10 days.",
            "low": "Low probability. It may be a common cold. Rest and fluids are recommended.",
        },
    },
    "common_cold": {
        "name": "Common Cold",
        "symptoms": ["runny nose", "sneezing", "sore throat"],
        "advice": {
            "high": "Likely a common cold. Rest, fluids and symptom relief medicines. It usually resolves in 7-10 days.",
            "medium": "Possible cold. Monitor symptoms and consult a doctor if fever lasts more than 3 days.",
            "low": "May not be a cold. Keep monitoring other symptoms.",
        },
    },
}

DISEASE_LABELS = list(DISEASES)

DEFAULT_ADVICE = "Consult a healthcare professional for proper diagnosis and treatment."


def find_disease(text: str) -> str | None:
    """First disease key (or its spaced form) mentioned in ``text``."""
    text = (text or "").lower()
    for key in DISEASES:
        if key in text or key.replace("_", " ") in text:
            return key
    return None


def recommendation(disease: str | None, confidence_level: str) -> str:
    info = DISEASES.get(disease or "")
    if not info:
        return DEFAULT_ADVICE
    return info["advice"].get(confidence_level.lower(), DEFAULT_ADVICE)


def display_name(disease: str) -> str:
    info = DISEASES.get(disease)
    return info["name"] if info else disease.replace("_", " ").title()
