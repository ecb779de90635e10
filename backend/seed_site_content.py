"""
Seed Firestore with the default site content
Publishes the built-in fleet and page copy as the first content version.
"""
import sys
import os
from dotenv import load_dotenv

# Add the backend directory to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# Load environment variables
load_dotenv()

from app.core.errors import ReservationError
from app.core.firebase import SITE_CONTENT_DOC_ID, Collections, firebase_client
from app.schemas.content import default_site_content
from app.services.content.store import ContentStore


def seed_site_content(client, force: bool = False):
    """Publish the defaults unless content already exists (or force is set)"""
    store = ContentStore(client)
    existing = client.collection(Collections.SITE_CONTENT).document(SITE_CONTENT_DOC_ID).get()
    if existing.exists and not force:
        print("⚠️  Site content already published. Use --force to overwrite it.")
        return None

    content = default_site_content()
    print(f"\n🚘 Publishing {len(content.fleet)} fleet classes...")
    print("-" * 70)
    for vehicle in content.fleet:
        print(f"✅ {vehicle.name} ({vehicle.seats}) - base fare ${vehicle.base_fare:,.2f}")

    version_id = store.save_content(content, actor="seed-script")
    print(f"\n✅ Site content published as version {version_id}")
    return version_id


def main():
    import argparse
    parser = argparse.ArgumentParser(description='Seed default site content')
    parser.add_argument('--force', action='store_true', help='Overwrite published content')
    args = parser.parse_args()

    print("=" * 70)
    print("🚀 WNY Black Car Site Content Seed")
    print("=" * 70)

    if firebase_client.db is None:
        print(f"❌ {firebase_client.config_error}")
        sys.exit(1)

    try:
        seed_site_content(firebase_client.db, force=args.force)
    except ReservationError as e:
        print(f"❌ Seed failed: {e.detail}")
        sys.exit(1)

    print("\n" + "=" * 70)
    print("🔗 Firebase Console:")
    project_id = os.getenv('FIREBASE_PROJECT_ID', 'your-project')
    print(f"   https://console.firebase.google.com/project/{project_id}/firestore")
    print("=" * 70)


if __name__ == "__main__":
    main()
