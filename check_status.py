#!/usr/bin/env python3
"""Verify database, Redis and engine status"""

import httpx
import psycopg2
import redis
from dotenv import load_dotenv

load_dotenv(".env.local")

from config import Config

TABLES = ("training_records", "positions", "courses", "position_stats", "access_logs")


def check_postgres():
    """Check PostgreSQL connectivity and row counts of the engine tables"""
    try:
        conn = psycopg2.connect(
            host=Config.DB_HOST,
            port=Config.DB_PORT,
            user=Config.DB_USER,
            password=Config.DB_PASSWORD,
            dbname=Config.DB_NAME,
            connect_timeout=5,
        )
    except psycopg2.Error as e:
        print(f"PostgreSQL Error: {e}")
        return False

    cur = conn.cursor()
    cur.execute("SELECT VERSION();")
    print(f"PostgreSQL Connected: {cur.fetchone()[0].split(',')[0]}")
    for table in TABLES:
        cur.execute("SELECT to_regclass(%s);", (table,))
        if cur.fetchone()[0] is None:
            print(f"  {table:18} missing")
            continue
        cur.execute(f"SELECT COUNT(*) FROM {table};")
        print(f"  {table:18} {cur.fetchone()[0]} rows")
    cur.close()
    conn.close()
    return True


def check_redis():
    """Check Redis connectivity and recompute queue depth"""
    try:
        r = redis.from_url(Config.REDIS_URL, decode_responses=True)
        r.ping()
    except redis.RedisError as e:
        print(f"Redis Error: {e}")
        return False
    print(f"Redis Connected: {Config.REDIS_URL.split('@')[-1]}")
    print(f"  {Config.RECOMPUTE_QUEUE}: {r.llen(Config.RECOMPUTE_QUEUE)} queued")
    return True


def check_services():
    """Check the engines' /health endpoints"""
    services = [
        ("Eligibility Engine", "http://localhost:8004/health"),
        ("Compliance Engine", "http://localhost:8005/health"),
    ]
    for name, url in services:
        try:
            r = httpx.get(url, timeout=2)
            mark = "✓" if r.status_code == 200 else "✗"
            print(f"{mark} {name} ({url}) -> {r.status_code}")
        except httpx.HTTPError as e:
            print(f"✗ {name} - Error: {e}")


if __name__ == "__main__":
    print("=== System Status Check ===\n")
    check_postgres()
    print()
    check_redis()
    print()
    print("Checking services...")
    check_services()
