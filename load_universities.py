"""
Import the World University Rankings dataset into the university catalog.

Usage:
    python load_universities.py
"""

import logging
import os
from typing import List

import kagglehub
import pandas as pd

from schemas import UniversityRecord
from university_source import synthesize_university

logger = logging.getLogger(__name__)

RANKINGS_DATASET = "raymondtoo/the-world-university-rankings-2016-2024"


def clean_rankings(df: pd.DataFrame) -> pd.DataFrame:
    """Reduce the raw rankings table to name, country and an integer rank."""
    df = df.copy()

    # Filter to latest year
    if "Year" in df.columns:
        latest_year = df["Year"].max()
        df = df[df["Year"] == latest_year].copy()

    if "Name" in df.columns:
        df = df[["Name", "Country", "Rank"]].copy()
        df.columns = ["name", "country", "rank"]

    # Drop missing values
    df = df.dropna(subset=["name", "country", "rank"])

    # Convert rank to numeric (handle ranges like "51-100" and "1001+")
    df["rank"] = df["rank"].astype(str).str.split("-").str[0].str.replace("+", "", regex=False).str.strip()
    df["rank"] = pd.to_numeric(df["rank"], errors="coerce")
    df = df.dropna(subset=["rank"])
    df["rank"] = df["rank"].astype(int)

    return df.drop_duplicates(subset=["name", "country"])


def build_catalog_records(df: pd.DataFrame) -> List[UniversityRecord]:
    """
    Turn a rankings table into catalog records.

    The dataset only provides name, country and rank; every other field is
    synthesized from the country defaults, with the dataset rank as ranking.
    """
    records = []
    for row in clean_rankings(df).itertuples(index=False):
        try:
            records.append(synthesize_university(
                str(row.name).strip(),
                str(row.country).strip(),
                ranking=int(row.rank),
            ))
        except ValueError as e:
            logger.warning(f"[CATALOG] Skipping {row.name}: {str(e)}")
    return records


def download_rankings() -> pd.DataFrame:
    path = kagglehub.dataset_download(RANKINGS_DATASET)

    # Find the CSV file in the downloaded path
    csv_files = [f for f in os.listdir(path) if f.endswith(".csv")]
    if not csv_files:
        raise FileNotFoundError(f"No CSV file found in {path}")
    return pd.read_csv(os.path.join(path, csv_files[0]))


if __name__ == "__main__":
    from crud import upsert_universities
    from database import SessionLocal, verify_tables_exist

    verify_tables_exist()
    records = build_catalog_records(download_rankings())
    print(f"Total universities after cleaning: {len(records)}")

    db = SessionLocal()
    try:
        upsert_universities(db, records, source="rankings")
    finally:
        db.close()
