import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def _default_home() -> Path:
    return Path.home() / ".config" / "libvault"


@dataclass
class Settings:
    # Uygulama
    app_name: str = os.getenv("APP_NAME", "Library Manager")
    debug: bool = _env_flag("DEBUG")

    # Veri dosyaları
    data_dir: str = os.getenv("LIBVAULT_DATA_DIR", str(_default_home() / "data"))
    user_file: Optional[str] = os.getenv("LIBVAULT_USER_FILE")
    book_file: Optional[str] = os.getenv("LIBVAULT_BOOK_FILE")

    # Günlükleme
    log_dir: str = os.getenv("LIBVAULT_LOG_DIR", str(_default_home() / "logs"))
    log_level: str = os.getenv("LIBVAULT_LOG_LEVEL", "INFO")
    log_max_bytes: int = int(os.getenv("LIBVAULT_LOG_MAX_BYTES", str(10 * 1024 * 1024)))
    log_backup_count: int = int(os.getenv("LIBVAULT_LOG_BACKUP_COUNT", "5"))

    # Şifreleme
    pbkdf2_iterations: int = int(os.getenv("LIBVAULT_PBKDF2_ITERATIONS", "65536"))

    # Ödünç verme kuralları
    student_loan_days: int = int(os.getenv("LIBVAULT_STUDENT_LOAN_DAYS", "15"))
    public_loan_days: int = int(os.getenv("LIBVAULT_PUBLIC_LOAN_DAYS", "7"))
    student_daily_fee: float = float(os.getenv("LIBVAULT_STUDENT_DAILY_FEE", "0.5"))
    public_daily_fee: float = float(os.getenv("LIBVAULT_PUBLIC_DAILY_FEE", "1.0"))
    admin_daily_fee: float = float(os.getenv("LIBVAULT_ADMIN_DAILY_FEE", "0.0"))

    # İkinci adım başarısız olursa ilk adımı geri al
    compensate_drift: bool = _env_flag("LIBVAULT_COMPENSATE_DRIFT")

    @property
    def user_data_path(self) -> Path:
        return Path(self.user_file) if self.user_file else Path(self.data_dir) / "UserData.json"

    @property
    def book_data_path(self) -> Path:
        return Path(self.book_file) if self.book_file else Path(self.data_dir) / "BookData.json"


settings = Settings()
