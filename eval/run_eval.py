#!/usr/bin/env python3
"""
Offline evaluation runner:
- Loads YAML cases under eval/cases/*.yaml
- Posts each case's text to /api/extract
- Scores symptom recall, severity agreement and negation precision, writes eval/report.json

Usage:
  python eval/run_eval.py --base-url http://localhost:8000
  python eval/run_eval.py --fast    # only the first N cases
"""

import argparse
import glob
import json
import os
from typing import Any, Dict, List

import httpx
import yaml

DEFAULT_BASE_URL = "http://localhost:8000"
CASES_GLOB = os.path.join(os.path.dirname(__file__), "cases", "*.yaml")
TIMEOUT = 8.0

def load_cases(limit: int | None = None) -> List[Dict[str, Any]]:
    paths = sorted(glob.glob(CASES_GLOB))
    cases: List[Dict[str, Any]] = []
    for p in paths:
        with open(p, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or []
            if isinstance(data, list):
                cases.extend(data)
    if limit is not None:
        cases = cases[:limit]
    return cases

def post_extract(client: httpx.Client, base_url: str, text: str) -> Dict[str, Any]:
    r = client.post(f"{base_url}/api/extract", json={"text": text}, timeout=TIMEOUT)
    r.raise_for_status()
    return r.json()

def eval_case(client: httpx.Client, base_url: str, case: Dict[str, Any]) -> Dict[str, Any]:
    got = post_extract(client, base_url, case["text"])
    found = {s["symptom"]: s.get("severity") for s in got.get("symptoms", [])}

    expect = case.get("expect_symptoms", {}) or {}    # symptom -> severity (or null)
    absent = case.get("expect_absent", []) or []      # negated symptoms that must not appear

    hits = [s for s in expect if s in found]
    sev_checked = [s for s in hits if expect[s]]
    sev_ok = [s for s in sev_checked if found[s] == expect[s]]
    leaked = [s for s in absent if s in found]

    return {
        "id": case["id"],
        "expected": sorted(expect),
        "got": sorted(found),
        "recall_hits": len(hits),
        "recall_total": len(expect),
        "severity_ok": len(sev_ok),
        "severity_total": len(sev_checked),
        "negation_leaks": leaked,
        "negation_total": len(absent),
    }

def summarize(results: List[Dict[str, Any]]) -> Dict[str, Any]:
    ok = [r for r in results if "error" not in r]
    recall = sum(r["recall_hits"] for r in ok) / max(1, sum(r["recall_total"] for r in ok))
    severity = sum(r["severity_ok"] for r in ok) / max(1, sum(r["severity_total"] for r in ok))
    neg_total = sum(r["negation_total"] for r in ok)
    neg_leaks = sum(len(r["negation_leaks"]) for r in ok)
    negation = (neg_total - neg_leaks) / max(1, neg_total)

    return {
        "total_cases": len(results),
        "errors": len(results) - len(ok),
        "symptom_recall": round(recall, 3),
        "severity_agreement": round(severity, 3),
        "negation_precision": round(negation, 3),
    }

def print_table(results: List[Dict[str, Any]], summary: Dict[str, Any]) -> None:
    headers = ["id", "recall", "severity", "neg leaks"]
    rows = []
    for r in results:
        if "error" in r:
            rows.append([r["id"], "error", "-", "-"])
            continue
        rows.append([
            r["id"],
            f"{r['recall_hits']}/{r['recall_total']}",
            f"{r['severity_ok']}/{r['severity_total']}",
            ",".join(r["negation_leaks"]) or "-",
        ])
    colw = [max(len(str(x)) for x in col) for col in zip(*([headers] + rows))]
    def fmt_row(row): return "  ".join(str(x).ljust(w) for x, w in zip(row, colw))

    print(fmt_row(headers))
    print("-" * (sum(colw) + 2 * (len(headers) - 1)))
    for row in rows:
        print(fmt_row(row))
    print("\nSummary:")
    for k, v in summary.items():
        print(f"- {k}: {v}")

def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--base-url", default=DEFAULT_BASE_URL)
    ap.add_argument("--fast", action="store_true", help="Run only the first 5 cases")
    ap.add_argument("--out", default=os.path.join(os.path.dirname(__file__), "report.json"))
    ap.add_argument("--min-recall", type=float, default=0.0, help="Exit non-zero below this recall")
    args = ap.parse_args()

    cases = load_cases(limit=5 if args.fast else None)
    if not cases:
        print("No cases found under eval/cases/*.yaml")
        return

    results: List[Dict[str, Any]] = []
    with httpx.Client() as client:
        for c in cases:
            try:
                results.append(eval_case(client, args.base_url, c))
            except httpx.HTTPError as e:
                results.append({"id": c["id"], "error": type(e).__name__})

    summary = summarize(results)

    # Write JSON report for CI / diffing
    os.makedirs(os.path.dirname(args.out), exist_ok=True)
    with open(args.out, "w", encoding="utf-8") as f:
        json.dump({"summary": summary, "results": results}, f, ensure_ascii=False, indent=2)

    print_table(results, summary)

    if summary["symptom_recall"] < args.min_recall:
        print(f"\nSymptom recall below target ({summary['symptom_recall']} < {args.min_recall})")
        raise SystemExit(1)

if __name__ == "__main__":
    main()
