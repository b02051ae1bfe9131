"""
View chat traffic analytics from the chat log.

Usage:
    python scripts/view_analytics.py              # Show summary stats
    python scripts/view_analytics.py --detailed   # Show recent messages too
"""

import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from linebridge.analytics import ChatLogger


def display_summary():
    """Display summary analytics."""
    logger = ChatLogger()
    stats = logger.get_stats()

    print("\n" + "="*70)
    print("📊 CHAT BRIDGE ANALYTICS SUMMARY")
    print("="*70)

    print(f"\n📈 Overall Stats:")
    print(f"  Inbound Messages: {stats['total_inbound']}")
    print(f"  Outbound Replies: {stats['total_outbound']}")
    print(f"  Unique Users: {stats['unique_users']}")
    print(f"  Handoffs: {stats['handoffs']}")

    print(f"\n🧭 Routes:")
    if stats['routes']:
        for route, count in sorted(stats['routes'].items(), key=lambda x: x[1], reverse=True):
            print(f"  {route:<12} {count}")
    else:
        print("  No data yet")

    print(f"\n🔥 Top FAQ Questions (by hits):")
    if stats['top_questions']:
        for i, (question, count) in enumerate(stats['top_questions'], 1):
            bar = "█" * min(count, 50)
            print(f"  {i:2d}. {question[:30]:<30} {bar} ({count})")
    else:
        print("  No data yet")

    print("\n" + "="*70)


def display_detailed():
    """Display summary plus the most recent messages."""
    logger = ChatLogger()
    entries = logger.read_records()

    if not entries:
        print("No chat log data found yet.")
        return

    display_summary()

    print(f"\n📝 Recent Messages (last 20):")
    print("-" * 70)

    for entry in entries[-20:]:
        ts = datetime.fromtimestamp(entry.get('timestamp', 0) / 1000).strftime("%Y-%m-%d %H:%M:%S")
        arrow = "→" if entry.get('direction') == "in" else "←"
        route = entry.get('route', '')
        text = entry.get('text', '').replace("\n", " ")
        print(f"{ts} {arrow} {entry.get('userId', '?')[:10]:<10} {route:<12} | {text[:40]}")

    print("-" * 70)


def main():
    """Main entry point."""
    if len(sys.argv) > 1 and sys.argv[1] == "--detailed":
        display_detailed()
    else:
        display_summary()


if __name__ == "__main__":
    main()
