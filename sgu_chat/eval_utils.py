from typing import Dict, List, Tuple

from .data_store import Corpus
from .matcher import RetrievalIndex
from .policy import DirectAnswer, RoutingPolicy


def build_all_tests_from_corpus(corpus: Corpus) -> List[Dict[str, str]]:
    """
    Builds a list of test cases (query, expected question) from every FAQ
    in the corpus. Each stored question should route back to itself.
    """
    tests = []
    for faq in corpus.faqs:
        if faq.question.strip():
            tests.append({"q": faq.question.strip(), "expected": faq.question})
    return tests


def run_offline_eval(policy: RoutingPolicy, index: RetrievalIndex, corpus: Corpus) -> Tuple[float, List[Dict]]:
    tests = build_all_tests_from_corpus(corpus)

    results = []
    correct = 0
    total = len(tests)

    for t in tests:
        decision = policy.decide(t["q"], index)
        matched = decision.matched_question if isinstance(decision, DirectAnswer) else None
        ok = matched == t["expected"]
        correct += 1 if ok else 0
        results.append({
            "query": t["q"],
            "expected": t["expected"],
            "predicted": matched,
            "ok": ok,
            "decision": decision.kind.value,
            "score": decision.confidence_score if isinstance(decision, DirectAnswer) else None,
        })

    accuracy = correct / total if total else 0.0
    return accuracy, results
