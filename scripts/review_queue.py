"""
Print the pending identity verification queue from a running server.

Usage:
    TOKEN=... python scripts/review_queue.py [http://localhost:8000]
"""
import os
import sys

import httpx

BASE = (sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000") + "/api"
token = os.environ.get("TOKEN")
if not token:
    print(__doc__)
    sys.exit(1)

client = httpx.Client(timeout=15, headers={"Authorization": f"Bearer {token}"})

page = 1
while True:
    r = client.get(f"{BASE}/admin/identity-verifications", params={"page": page, "pageSize": 50})
    if r.status_code != 200:
        print(f"Error {r.status_code}: {r.json().get('detail')}")
        sys.exit(1)
    body = r.json()
    if page == 1:
        print(f"=== {body['total']} pending verification(s) ===\n")
    for v in body["items"]:
        print(f"  {v['id']}  user={v['userId']}  email={v['submittedEmail']}  since={v['createdAt']}")
    if not body["hasMore"]:
        break
    page += 1
