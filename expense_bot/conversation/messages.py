"""
User-facing texts.

Everything the bot says lives here so the router reads as logic only.
The bot speaks Indonesian, like the "rb"/"jt" amounts it accepts.
"""

from typing import Optional

from expense_bot.models.ledger import (
    EntryInput,
    LedgerEntry,
    PeriodKind,
    PeriodSummary,
    ReminderPeriod,
)


FORMAT_EXAMPLE = "Contoh: 10rb, Makanan, Makan Siang di Kantin"

START_TEXT = (
    "👋 Hai! Saya adalah bot pencatat keuangan.\n\n"
    "📝 Untuk mencatat pengeluaran, kirim dalam format:\n"
    "Nominal, Kategori, Keterangan\n"
    f"{FORMAT_EXAMPLE}\n\n"
    "📋 Perintah yang tersedia:\n"
    "/help - Tampilkan bantuan\n"
    "/summary - Tampilkan total pengeluaran\n"
    "/weekly - Tampilkan pengeluaran minggu ini\n"
    "/monthly - Tampilkan pengeluaran bulan ini\n"
    "/last - Tampilkan data terakhir\n"
    "/remove - Hapus entri terakhir\n"
    "/edit <nomor> - Edit entri berdasarkan nomor\n"
    "/history - Tampilkan transaksi terakhir\n"
    "/reminder - Atur pengingat harian/mingguan/bulanan"
)

HELP_TEXT = (
    "📋 Cara menggunakan bot:\n\n"
    "1. Untuk mencatat pengeluaran:\n"
    "   Kirim dalam format: Nominal, Kategori, Keterangan\n"
    f"   {FORMAT_EXAMPLE}\n\n"
    "2. Perintah yang tersedia:\n"
    "   /start - Mulai bot\n"
    "   /help - Tampilkan bantuan ini\n"
    "   /summary - Tampilkan total pengeluaran\n"
    "   /weekly - Tampilkan pengeluaran minggu ini\n"
    "   /monthly - Tampilkan pengeluaran bulan ini\n"
    "   /last - Tampilkan data terakhir\n"
    "   /remove - Hapus entri terakhir\n"
    "   /edit <nomor> - Edit entri berdasarkan nomor\n"
    "   /history - Tampilkan transaksi terakhir\n"
    "   /reminder - Atur pengingat\n\n"
    "3. Format nominal:\n"
    "   - 10rb = 10.000\n"
    "   - 1jt = 1.000.000\n"
    "   - 100k = 100.000"
)

USAGE_TEXT = (
    "Format salah🙅🏻‍♂️. Gunakan: Nominal, Kategori, Keterangan. \n"
    f"{FORMAT_EXAMPLE}\n\n"
    "Gunakan /help untuk melihat bantuan lengkap"
)

EDIT_FORMAT_TEXT = (
    "Format salah🙅🏻‍♂️. Gunakan: Nominal, Kategori, Keterangan\n"
    f"{FORMAT_EXAMPLE}"
)

UNKNOWN_COMMAND_TEXT = (
    "❌ Perintah tidak dikenali. Gunakan /help untuk melihat daftar perintah yang tersedia"
)

INVALID_POSITION_TEXT = "❌ Nomor entri tidak valid. Gunakan format: /edit <nomor>"
ENTRY_NOT_FOUND_TEXT = "❌ Entri tidak ditemukan"
NO_ENTRIES_TEXT = "Belum ada data yang dimasukkan"
NOTHING_TO_REMOVE_TEXT = "❌ Belum ada data yang bisa dihapus"

APPEND_FAILED_TEXT = "❌Terjadi kesalahan saat menambahkan data."
APPEND_TIMED_OUT_TEXT = (
    "⚠️ Penyimpanan terlalu lama merespons. Data mungkin sudah tersimpan, "
    "cek /history sebelum mengirim ulang."
)
EDIT_FAILED_TEXT = "❌ Gagal mengedit data."
READ_ENTRY_FAILED_TEXT = "❌ Gagal mengambil data entri"
TOTAL_FAILED_TEXT = "❌ Gagal mengambil total pengeluaran"
LAST_FAILED_TEXT = "❌ Gagal mengambil data terakhir"
REMOVE_FAILED_TEXT = "❌ Gagal menghapus data terakhir"
HISTORY_FAILED_TEXT = "❌ Gagal mengambil riwayat transaksi"
PREFERENCE_FAILED_TEXT = "❌ Gagal menyimpan pengaturan pengingat"
UNKNOWN_CHOICE_TEXT = "❌ Pilihan tidak dikenali"

PERIOD_FAILED_TEXT = {
    PeriodKind.DAILY: "❌ Gagal mengambil data pengeluaran harian",
    PeriodKind.WEEKLY: "❌ Gagal mengambil data pengeluaran mingguan",
    PeriodKind.MONTHLY: "❌ Gagal mengambil data pengeluaran bulanan",
}

PERIOD_TITLE = {
    PeriodKind.DAILY: "Hari Ini",
    PeriodKind.WEEKLY: "Minggu Ini",
    PeriodKind.MONTHLY: "Bulan Ini",
}

PERIOD_EMPTY_TEXT = {
    PeriodKind.DAILY: "Tidak ada pengeluaran hari ini",
    PeriodKind.WEEKLY: "Tidak ada pengeluaran minggu ini",
    PeriodKind.MONTHLY: "Tidak ada pengeluaran bulan ini",
}

REMINDER_PROMPT_TEXT = "🔔 Pilih jenis pengingat:"

# (label, callback token) rows of the reminder keyboard
REMINDER_CHOICES = [
    [("Harian", "reminder_daily"), ("Mingguan", "reminder_weekly")],
    [("Bulanan", "reminder_monthly"), ("Matikan", "reminder_none")],
]

REMINDER_LABEL = {
    ReminderPeriod.DAILY: "harian",
    ReminderPeriod.WEEKLY: "mingguan",
    ReminderPeriod.MONTHLY: "bulanan",
}

REMINDER_CONFIRMATION = {
    ReminderPeriod.DAILY: (
        "✅ Pengingat harian diaktifkan. "
        "Kamu akan menerima ringkasan pengeluaran setiap hari."
    ),
    ReminderPeriod.WEEKLY: (
        "✅ Pengingat mingguan diaktifkan. "
        "Kamu akan menerima ringkasan pengeluaran setiap minggu."
    ),
    ReminderPeriod.MONTHLY: (
        "✅ Pengingat bulanan diaktifkan. "
        "Kamu akan menerima ringkasan pengeluaran setiap bulan."
    ),
    ReminderPeriod.NONE: "✅ Pengingat dimatikan.",
}


def format_rupiah(amount: int) -> str:
    """1500000 -> "1.500.000"."""
    sign = "-" if amount < 0 else ""
    return sign + f"{abs(amount):,}".replace(",", ".")


def _amount_text(entry: LedgerEntry) -> str:
    return format_rupiah(entry.amount) if entry.amount is not None else "?"


def format_entry(entry: LedgerEntry) -> str:
    return (
        f"📅{entry.date_text} - 💰{_amount_text(entry)} | "
        f"🎯{entry.category} | 📚{entry.note}"
    )


def appended_text(position: int, entry: EntryInput, total: Optional[int]) -> str:
    total_line = (
        f"Total Nominal: Rp. {format_rupiah(total)}"
        if total is not None
        else "Total Nominal: (gagal mengambil total)"
    )
    return (
        f"✅Data #{position} berhasil ditambahkan ke Google Spreadsheet.\n"
        "Kamu telah memasukkan:\n"
        f"💰{format_rupiah(entry.amount)}\n"
        f"🎯{entry.category}\n"
        f"📚{entry.note}\n\n"
        f"{total_line}"
    )


def edit_prompt_text(entry: LedgerEntry) -> str:
    return (
        f"✏️ Edit entri #{entry.position}:\n{format_entry(entry)}\n\n"
        "Kirim data baru dalam format:\n"
        "Nominal, Kategori, Keterangan\n"
        f"{FORMAT_EXAMPLE}"
    )


def edited_text(entry: LedgerEntry) -> str:
    return f"✅ Data berhasil diedit:\n#{entry.position} {format_entry(entry)}"


def removed_text(entry: LedgerEntry) -> str:
    return f"✅ Data berhasil dihapus:\n#{entry.position} {format_entry(entry)}"


def total_text(total: int) -> str:
    return f"📊 Total pengeluaran saat ini: Rp. {format_rupiah(total)}"


def last_entry_text(entry: LedgerEntry) -> str:
    return f"🕘 Data terakhir: #{entry.position} - {format_entry(entry)}"


def history_text(entries: list[LedgerEntry]) -> str:
    lines = [f"🧾 {len(entries)} Transaksi Terakhir:", ""]
    for entry in entries:
        lines.append(
            f"#{entry.position}. Rp {_amount_text(entry)} - {entry.category} - {entry.note}"
        )
    return "\n".join(lines)


def period_summary_text(summary: PeriodSummary) -> str:
    if summary.is_empty:
        return PERIOD_EMPTY_TEXT[summary.kind]
    lines = [
        f"📊 Pengeluaran {PERIOD_TITLE[summary.kind]} (Rp. {format_rupiah(summary.total)}):",
        "",
    ]
    lines.extend(format_entry(entry) for entry in summary.entries)
    return "\n".join(lines)


def reminder_text(period: ReminderPeriod, summary: PeriodSummary) -> str:
    return f"🔔 Pengingat {REMINDER_LABEL[period]}:\n\n{period_summary_text(summary)}"
