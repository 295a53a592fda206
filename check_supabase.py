import os
from dotenv import load_dotenv
from supabase import create_client, Client

TABLES = (
    "appointments",
    "cancellation_tokens",
    "appointment_waiting_list",
    "notification_preferences",
    "notification_logs",
)

def check_supabase_connection():
    # Load environment variables
    load_dotenv()

    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY")

    print(f"--- Supabase Connection Check ---")
    print(f"URL: {url}")
    if key:
        print(f"Key detected: {key[:5]}...{key[-5:]} (Length: {len(key)})")
    else:
        print("Key detected: NONE")

    if not url or not key:
        print("\nERROR: SUPABASE_URL or SUPABASE_KEY missing from environment.")
        return

    try:
        supabase: Client = create_client(url, key)
        print("Client initialized.")
    except Exception as e:
        print(f"\nCaught Exception: {type(e).__name__}")
        print(f"Error Details: {e}")
        return

    for table in TABLES:
        try:
            response = supabase.table(table).select("*").limit(1).execute()
            print(f"[ok]   {table}: {len(response.data)} row(s) visible")
        except Exception as e:
            print(f"[fail] {table}: {type(e).__name__}: {e}")

if __name__ == "__main__":
    check_supabase_connection()
