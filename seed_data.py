"""Hand-curated universities used to seed an empty catalog."""

from schemas import UniversityRecord


def _masters(name, field, duration, tuition, min_gpa, ielts, toefl, gre=False):
    return {
        "name": name,
        "degree": "masters",
        "field": field,
        "duration": duration,
        "tuition_per_year": tuition,
        "requirements": {"min_gpa": min_gpa, "ielts_min": ielts, "toefl_min": toefl, "gre_required": gre},
    }


def _mba(duration, tuition, min_gpa, ielts, toefl):
    return {
        "name": "MBA",
        "degree": "mba",
        "field": "Business",
        "duration": duration,
        "tuition_per_year": tuition,
        "requirements": {"min_gpa": min_gpa, "ielts_min": ielts, "toefl_min": toefl, "gmat_required": True},
    }


_SEED_ROWS = [
    {
        "name": "Massachusetts Institute of Technology",
        "country": "USA",
        "city": "Cambridge, MA",
        "ranking": 1,
        "acceptance_rate": 4,
        "international_student_ratio": 30,
        "living_cost_per_year": 25000,
        "application_fee": 75,
        "website": "https://mit.edu",
        "description": "World-renowned research university known for science and technology.",
        "programs": [
            _masters("MS Computer Science", "Computer Science", "2 years", 57590, 3.7, 7.0, 100, gre=True),
            _mba("2 years", 82000, 3.5, 7.5, 109),
        ],
    },
    {
        "name": "Stanford University",
        "country": "USA",
        "city": "Stanford, CA",
        "ranking": 3,
        "acceptance_rate": 4,
        "international_student_ratio": 24,
        "living_cost_per_year": 28000,
        "application_fee": 90,
        "website": "https://stanford.edu",
        "description": "Elite private research university in Silicon Valley.",
        "programs": [
            _masters("MS Computer Science", "Computer Science", "2 years", 60000, 3.6, 7.0, 100, gre=True),
        ],
    },
    {
        "name": "University of Toronto",
        "country": "Canada",
        "city": "Toronto, ON",
        "ranking": 21,
        "acceptance_rate": 43,
        "international_student_ratio": 25,
        "living_cost_per_year": 15000,
        "application_fee": 125,
        "website": "https://utoronto.ca",
        "description": "Canada's top university with diverse programs.",
        "programs": [
            _masters("MSc Computer Science", "Computer Science", "2 years", 45000, 3.3, 7.0, 93),
            _mba("20 months", 65000, 3.0, 7.0, 100),
        ],
    },
    {
        "name": "University of British Columbia",
        "country": "Canada",
        "city": "Vancouver, BC",
        "ranking": 35,
        "acceptance_rate": 52,
        "international_student_ratio": 28,
        "living_cost_per_year": 14000,
        "application_fee": 110,
        "website": "https://ubc.ca",
        "description": "Leading Canadian research university on the Pacific coast.",
        "programs": [
            _masters("MSc Data Science", "Data Science", "2 years", 40000, 3.0, 6.5, 90),
        ],
    },
    {
        "name": "University of Oxford",
        "country": "UK",
        "city": "Oxford",
        "ranking": 4,
        "acceptance_rate": 17,
        "international_student_ratio": 45,
        "living_cost_per_year": 18000,
        "application_fee": 75,
        "website": "https://ox.ac.uk",
        "description": "World's oldest English-speaking university.",
        "programs": [
            _masters("MSc Computer Science", "Computer Science", "1 year", 35000, 3.5, 7.5, 110),
        ],
    },
    {
        "name": "Imperial College London",
        "country": "UK",
        "city": "London",
        "ranking": 6,
        "acceptance_rate": 14,
        "international_student_ratio": 60,
        "living_cost_per_year": 22000,
        "application_fee": 80,
        "website": "https://imperial.ac.uk",
        "description": "World-class science, engineering, and medicine institution.",
        "programs": [
            _masters("MSc Computing", "Computer Science", "1 year", 38000, 3.3, 7.0, 100),
        ],
    },
    {
        "name": "University of Melbourne",
        "country": "Australia",
        "city": "Melbourne",
        "ranking": 33,
        "acceptance_rate": 70,
        "international_student_ratio": 45,
        "living_cost_per_year": 21000,
        "application_fee": 100,
        "website": "https://unimelb.edu.au",
        "description": "Australia's leading university with global reputation.",
        "programs": [
            _masters("Master of IT", "Information Technology", "2 years", 45000, 3.0, 6.5, 79),
        ],
    },
    {
        "name": "Technical University of Munich",
        "country": "Germany",
        "city": "Munich",
        "ranking": 50,
        "acceptance_rate": 40,
        "international_student_ratio": 35,
        "living_cost_per_year": 12000,
        "application_fee": 0,
        "website": "https://tum.de",
        "description": "Germany's top technical university with no tuition fees.",
        "programs": [
            _masters("MSc Informatics", "Computer Science", "2 years", 300, 3.0, 6.5, 88),
        ],
    },
    {
        "name": "ETH Zurich",
        "country": "Switzerland",
        "city": "Zurich",
        "ranking": 8,
        "acceptance_rate": 27,
        "international_student_ratio": 40,
        "living_cost_per_year": 24000,
        "application_fee": 150,
        "website": "https://ethz.ch",
        "description": "Europe's leading science and technology university.",
        "programs": [
            _masters("MSc Computer Science", "Computer Science", "2 years", 1500, 3.5, 7.0, 100, gre=True),
        ],
    },
    {
        "name": "National University of Singapore",
        "country": "Singapore",
        "city": "Singapore",
        "ranking": 11,
        "acceptance_rate": 25,
        "international_student_ratio": 38,
        "living_cost_per_year": 16000,
        "application_fee": 50,
        "website": "https://nus.edu.sg",
        "description": "Asia's leading global university.",
        "programs": [
            _masters("MSc Computer Science", "Computer Science", "1.5 years", 35000, 3.2, 6.5, 90, gre=True),
        ],
    },
    {
        "name": "Arizona State University",
        "country": "USA",
        "city": "Tempe, AZ",
        "ranking": 185,
        "acceptance_rate": 88,
        "international_student_ratio": 15,
        "living_cost_per_year": 15000,
        "application_fee": 70,
        "website": "https://asu.edu",
        "description": "Large public research university known for innovation.",
        "programs": [
            _masters("MS Computer Science", "Computer Science", "2 years", 32000, 3.0, 6.5, 80),
        ],
    },
    {
        "name": "University of Waterloo",
        "country": "Canada",
        "city": "Waterloo, ON",
        "ranking": 112,
        "acceptance_rate": 53,
        "international_student_ratio": 22,
        "living_cost_per_year": 12000,
        "application_fee": 125,
        "website": "https://uwaterloo.ca",
        "description": "Top Canadian university for engineering and co-op programs.",
        "programs": [
            _masters("MMath Computer Science", "Computer Science", "2 years", 28000, 3.0, 7.0, 90),
        ],
    },
]

# All seeded institutions offer scholarships
SEED_UNIVERSITIES = [UniversityRecord(scholarships_available=True, **row) for row in _SEED_ROWS]
