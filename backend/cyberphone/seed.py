# Overview: Default catalogue and demo data loaded by `flask system init` / `flask system seed`.

"""
Everything is created through the services so the demo data obeys the same
rules as live traffic: opening balances are ledger credits, stores set
user.store_id, posts carry validated payloads.

Seeding is idempotent: an email that already exists is skipped, and so is
everything that hangs off it.
"""

from __future__ import annotations

from datetime import timedelta

from .extensions import db
from .models import AudioTrack, User
from .services import auth_service, catalog_service, content_service, ledger_service
from .time_utils import utcnow


DEFAULT_PASSWORD = "Cyberphone123!"

DEFAULT_AUDIO_TRACKS = [
    ("Upbeat Funk", "GrooveMaster", "https://cdn.pixabay.com/audio/2023/04/23/audio_87b3225287.mp3"),
    ("Chill Lo-fi", "BeatScaper", "https://cdn.pixabay.com/audio/2024/05/08/audio_291071a938.mp3"),
    ("Epic Cinematic", "OrchestraX", "https://cdn.pixabay.com/audio/2023/09/25/audio_2894a4c0a5.mp3"),
    ("Acoustic Guitar", "Strummer", "https://cdn.pixabay.com/audio/2022/08/03/audio_54b383134e.mp3"),
    ("Tropical House", "DJ Sunny", "https://cdn.pixabay.com/audio/2022/05/27/audio_14c81d3222.mp3"),
]

DEFAULT_USERS = [
    {
        "key": "creator1",
        "email": "ana.silva@cyberphone.com",
        "first_name": "Ana",
        "last_name": "Silva",
        "user_type": "CREATOR",
        "phone": "11987654321",
        "profile_picture": "https://picsum.photos/100/100?random=1",
        "credentials": "PhD in Physics, educational content creator.",
        "bio": "Making the mysteries of the universe accessible to everyone.",
        "opening_balance_cents": 15075,
    },
    {
        "key": "standard1",
        "email": "carlos.gomes@cyberphone.com",
        "first_name": "Carlos",
        "last_name": "Gomes",
        "user_type": "STANDARD",
        "phone": "21912345678",
        "profile_picture": "https://picsum.photos/100/100?random=2",
        "opening_balance_cents": 1050,
    },
    {
        "key": "creator2",
        "email": "joao.costa@cyberphone.com",
        "first_name": "Joao",
        "last_name": "Costa",
        "user_type": "CREATOR",
        "phone": "31923456789",
        "profile_picture": "https://picsum.photos/100/100?random=3",
        "credentials": "MSc in Mathematics, advanced calculus specialist.",
        "bio": "Helping students beat maths with practical, fun online content.",
        "opening_balance_cents": 7500,
    },
    {
        "key": "standard2",
        "email": "beatriz.lima@cyberphone.com",
        "first_name": "Beatriz",
        "last_name": "Lima",
        "user_type": "STANDARD",
        "phone": "41934567890",
        "profile_picture": "https://picsum.photos/100/100?random=4",
        "opening_balance_cents": 2500,
    },
]

DEFAULT_STORES = [
    {
        "owner": "creator1",
        "name": "Physics Made Simple by Ana",
        "description": "Study material and physics kits for fun, effective learning.",
        "products": [
            {
                "name": "E-book: Foundations of Relativity",
                "description": "A complete guide to Einstein's theory of relativity, with exercises.",
                "price_cents": 2999,
                "image_urls": ["https://picsum.photos/300/200?random=ebook1", "https://picsum.photos/300/200?random=ebook2"],
                "affiliate_commission_rate": 0.15,
                "product_type": "DIGITAL_EBOOK",
            },
            {
                "name": "Physics Experiment Kit (DIY)",
                "description": "Materials and instructions for 5 physics experiments at home.",
                "price_cents": 7990,
                "image_urls": ["https://picsum.photos/300/200?random=kit"],
                "affiliate_commission_rate": 0.10,
                "product_type": "PHYSICAL",
            },
        ],
    },
    {
        "owner": "creator2",
        "name": "Maths with Joao",
        "description": "Courses and resources to master mathematics, clearly and objectively.",
        "products": [
            {
                "name": "Online Course: Multivariable Calculus",
                "description": "In-depth video lessons on partial derivatives and line integrals.",
                "price_cents": 19900,
                "image_urls": ["https://picsum.photos/300/200?random=course"],
                "affiliate_commission_rate": 0.20,
                "product_type": "DIGITAL_COURSE",
            },
        ],
    },
]

DEFAULT_POSTS = [
    {
        "author": "creator1",
        "post_type": "TEXT",
        "payload": {"text": "Hi everyone! Sharing new findings about black holes this week. Stay tuned!"},
    },
    {
        "author": "creator2",
        "post_type": "IMAGE",
        "payload": {
            "image_url": "https://picsum.photos/600/400?random=5",
            "text": "An interesting chart on the distribution of prime numbers. Challenging, right?",
        },
        "likes": ["standard1"],
        "comments": [("standard1", "Great one! Loved the explanation.")],
    },
    {
        "author": "creator1",
        "post_type": "LIVE",
        "payload": {
            "title": "Unpacking the Theory of Relativity",
            "description": "An introductory class on the core ideas of Einstein's relativity.",
            "is_paid": True,
            "price_cents": 1500,
            "payment_link": "https://example.com/pay-relativity",
            "stream_url": "https://www.youtube.com/embed/dQw4w9WgXcQ?autoplay=1&mute=1",
        },
    },
    {
        "author": "standard1",
        "post_type": "TEXT",
        "payload": {"text": "Watching Ana's live class, loving the quantum physics explanation!"},
        "likes": ["creator1"],
    },
    {
        "author": "creator2",
        "post_type": "LIVE",
        "payload": {
            "title": "Euclidean Geometry for Beginners",
            "description": "Plane and solid geometry basics. Free for everyone!",
            "stream_url": "https://www.youtube.com/embed/M7QvP6oG_jM?autoplay=1&mute=1",
        },
        "likes": ["standard2"],
    },
    {
        "author": "creator1",
        "post_type": "REEL",
        "payload": {
            "title": "Quick Physics Tip: Newton's First Law",
            "description": "A short, fun video on Newton's first law.",
            "video_url": "https://assets.mixkit.co/videos/preview/mixkit-little-girl-playing-with-toy-kitchen-38555-large.mp4",
        },
        "audio_track": 0,
    },
    {
        "author": "standard2",
        "post_type": "REEL",
        "payload": {
            "title": "My Take on a Calculus Problem",
            "description": "A different way to solve tricky integrals!",
            "video_url": "https://assets.mixkit.co/videos/preview/mixkit-curious-cat-looking-at-the-camera-42171-large.mp4",
        },
    },
]


def seed_audio_tracks() -> int:
    """Create the reel soundtrack catalogue once. Returns how many tracks were added."""
    if db.session.query(AudioTrack).count():
        return 0
    for title, artist, url in DEFAULT_AUDIO_TRACKS:
        db.session.add(AudioTrack(title=title, artist=artist, url=url))
    db.session.commit()
    return len(DEFAULT_AUDIO_TRACKS)


def seed_demo_data() -> dict:
    """Create the demo users, stores, products and posts. Returns counts of what was created."""
    seed_audio_tracks()
    created = {"users": 0, "stores": 0, "products": 0, "posts": 0}

    users: dict[str, User] = {}
    new_keys: set[str] = set()
    for entry in DEFAULT_USERS:
        existing = db.session.query(User).filter_by(email=entry["email"]).first()
        if existing:
            users[entry["key"]] = existing
            continue
        profile = {k: entry[k] for k in ("phone", "profile_picture", "bio", "credentials") if k in entry}
        user = auth_service.register_user(
            entry["email"],
            DEFAULT_PASSWORD,
            entry["first_name"],
            entry["last_name"],
            entry["user_type"],
            **profile,
        )
        ledger_service.adjust_balance(user.id, entry["opening_balance_cents"], "Opening balance")
        users[entry["key"]] = user
        new_keys.add(entry["key"])
        created["users"] += 1

    for entry in DEFAULT_STORES:
        if entry["owner"] not in new_keys:
            continue
        store = catalog_service.create_store(
            users[entry["owner"]].id,
            {"name": entry["name"], "description": entry["description"]},
        )
        created["stores"] += 1
        for product in entry["products"]:
            catalog_service.create_product(store.id, dict(product))
            created["products"] += 1

    tracks = content_service.list_audio_tracks()
    now = utcnow()
    for index, entry in enumerate(DEFAULT_POSTS):
        if entry["author"] not in new_keys:
            continue
        payload = dict(entry["payload"])
        if "audio_track" in entry and tracks:
            payload["audio_track_id"] = tracks[entry["audio_track"]].id
        post = content_service.create_post(users[entry["author"]].id, entry["post_type"], payload)
        post.created_at = now - timedelta(hours=index + 1)
        db.session.commit()
        for liker in entry.get("likes", []):
            content_service.toggle_engagement(post.id, users[liker].id, content_service.KIND_LIKE, active=True)
        for commenter, text in entry.get("comments", []):
            content_service.add_comment(post.id, users[commenter].id, text)
        created["posts"] += 1

    return created
