"""TF-IDF vectors and cosine similarity for tokenized mentions."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence

import numpy as np

from tokenizer import is_filler_verb


@dataclass
class Vectorization:
    matrix: np.ndarray
    terms: List[str]
    term_index: Dict[str, int]
    doc_freq: np.ndarray

    @property
    def num_docs(self) -> int:
        return int(self.matrix.shape[0])


class TfidfVectorizer:
    """Sublinear TF with smoothed IDF and L2-normalized rows."""

    def __init__(self, filler_weight: float = 0.3):
        self.filler_weight = filler_weight

    def build_vocabulary(self, documents: Sequence[Sequence[str]]) -> Dict[str, int]:
        term_index: Dict[str, int] = {}
        for doc in documents:
            for term in doc:
                if term not in term_index:
                    term_index[term] = len(term_index)
        return term_index

    def fit_transform(self, documents: Sequence[Sequence[str]]) -> Vectorization:
        term_index = self.build_vocabulary(documents)
        terms = list(term_index)
        n_docs = len(documents)

        doc_freq = np.zeros(len(terms), dtype=np.int64)
        counts: List[Counter] = []
        for doc in documents:
            counter = Counter(doc)
            counts.append(counter)
            for term in counter:
                doc_freq[term_index[term]] += 1

        idf = np.log((1.0 + n_docs) / (1.0 + doc_freq.astype(np.float64))) + 1.0

        matrix = np.zeros((n_docs, len(terms)), dtype=np.float64)
        for row, counter in enumerate(counts):
            for term, count in counter.items():
                col = term_index[term]
                tf = 1.0 + math.log(count)
                if is_filler_verb(term):
                    tf *= self.filler_weight
                matrix[row, col] = tf * idf[col]

        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        np.divide(matrix, norms, out=matrix, where=norms > 0)

        return Vectorization(matrix=matrix, terms=terms, term_index=term_index, doc_freq=doc_freq)


def cosine_similarity_matrix(matrix: np.ndarray) -> np.ndarray:
    """Pairwise cosine similarity; zero rows are dissimilar to everything."""
    arr = np.asarray(matrix, dtype=np.float64)
    if arr.ndim != 2:
        raise ValueError(f"Expected a 2-D matrix, got shape {arr.shape}")
    n = arr.shape[0]
    if n == 0:
        return np.zeros((0, 0), dtype=np.float64)
    norms = np.linalg.norm(arr, axis=1)
    safe = np.where(norms > 0, norms, 1.0)
    unit = arr / safe[:, None]
    sim = unit @ unit.T
    sim = (sim + sim.T) / 2.0
    np.clip(sim, -1.0, 1.0, out=sim)
    np.fill_diagonal(sim, 1.0)
    return sim
