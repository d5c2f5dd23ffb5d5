# python -m cobranza.jobs.overdue_cli
from dotenv import load_dotenv  # opcional si usás .env
load_dotenv()

from cobranza.jobs.overdue import mark_overdue_loans_job  # noqa: E402

if __name__ == "__main__":
    tenants = mark_overdue_loans_job()
    print(f"Tenants con préstamos en atraso actualizados: {tenants}")
