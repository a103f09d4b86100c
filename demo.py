#!/usr/bin/env python3
"""
Demo script for the CertChain backend.
Issues a few certificates against a running server and looks them up again.
"""

import os

import requests

API_BASE = os.getenv("CERTCHAIN_API", "http://localhost:5000")

# Smallest things the server accepts as a PDF and an image
FAKE_PDF = b"%PDF-1.4\n%demo certificate\n"
FAKE_PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16

STUDENTS = [
    {"name": "Alice Tan", "courseName": "Data Structures", "instituteName": "Tech U"},
    {"name": "Bob Lim", "courseName": "Operating Systems", "instituteName": "Tech U"},
    {"name": "Chitra Rao", "courseName": "Applied Cryptography", "instituteName": "City College"},
]


def issue_certificates():
    """Upload one certificate per demo student. Returns the hashes."""
    hashes = []
    print("Issuing demo certificates...")
    for student in STUDENTS:
        files = {
            "pdf": ("certificate.pdf", FAKE_PDF, "application/pdf"),
            "photo": ("photo.png", FAKE_PNG, "image/png"),
        }
        try:
            response = requests.post(f"{API_BASE}/api/certificates", data=student, files=files, timeout=10)
            data = response.json()
            if response.status_code == 200 and data.get("success"):
                print(f"✓ {student['name']}: {data['hash'][:16]}...")
                hashes.append(data["hash"])
            else:
                print(f"✗ {student['name']}: {data.get('error')}")
        except requests.RequestException as e:
            print(f"✗ Error issuing certificate for {student['name']}: {e}")
    return hashes


def lookup_certificates(hashes):
    print("\nLooking certificates up by hash...")
    for digest in hashes + ["0" * 64]:
        response = requests.get(f"{API_BASE}/api/certificates/{digest}", timeout=10)
        if response.status_code == 200:
            cert = response.json()["certificate"]
            print(f"✓ {digest[:12]}... → {cert['name']} / {cert['courseName']} ({cert['createdAt']})")
        elif response.status_code == 404:
            print(f"• {digest[:12]}... → not found")
        else:
            print(f"✗ {digest[:12]}... → HTTP {response.status_code}")


def main():
    print("🚀 CertChain Demo")
    print("=" * 50)

    try:
        response = requests.get(f"{API_BASE}/", timeout=5)
        response.raise_for_status()
    except requests.RequestException:
        print(f"❌ Cannot connect to {API_BASE}. Please start the backend server first.")
        return

    print(f"✓ Backend up, {response.json().get('records')} records stored")
    hashes = issue_certificates()
    lookup_certificates(hashes)

    print("\n✅ Demo completed!")
    print("Commit a hash on-chain with addCertificate(id, hash), then GET /api/verify/<id>.")


if __name__ == "__main__":
    main()
