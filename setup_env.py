import os
import secrets

DEFAULTS = {
    "DATABASE_URL": "sqlite:///./data/ciphershare.db",
    "CONTENT_STORE": "local",
    "CONTENT_STORE_PATH": "./data/blobs",
    "IPFS_API_URL": "http://127.0.0.1:5001",
    "LOG_LEVEL": "INFO",
}

def generate_secret_key():
    print("Generating token signing secret...")
    return secrets.token_urlsafe(48)

def setup_env():
    if os.path.exists(".env"):
        response = input("A .env file already exists. Overwrite it? (y/N): ")
        if response.lower() != 'y':
            print("Aborted.")
            return

    values = dict(DEFAULTS)
    if os.path.exists(".env.example"):
        print("Reading .env.example...")
        with open(".env.example", "r") as f:
            for line in f.read().splitlines():
                if not line.strip() or line.lstrip().startswith("#") or "=" not in line:
                    continue
                name, value = line.split("=", 1)
                values[name.strip()] = value.strip()

    # Must match the secret of the service that issues the tokens
    values["SECRET_KEY"] = generate_secret_key()

    with open(".env", "w") as f:
        for name, value in values.items():
            f.write(f"{name}={value}\n")

    print("SUCCESS: .env file created with a new SECRET_KEY.")

if __name__ == "__main__":
    setup_env()
