"""
Bulk lead import

Flow:
1. read_upload() turns a .csv / .xlsx upload into (row_number, row_dict) pairs
2. validate_row() reports "Row N: ..." problems; bad rows are skipped
3. dedupe_rows() keeps the first row per normalised phone
4. LeadImporter.run() upserts against existing leads in batches

CSV parsing is deliberately naive: one record per line, fields split on ","
with no quote handling. Rows are numbered as in a spreadsheet, header = 1.
"""

import logging
import random

import openpyxl
from django.conf import settings
from django.db import transaction
from django.urls import reverse
from django.utils import timezone

from apps.core.realtime import broadcast_change
from .models import Lead, Activity, normalize_status, phone_digits

logger = logging.getLogger(__name__)


TEMPLATE_HEADERS = [
    'name', 'email', 'phone', 'company', 'designation', 'source', 'priority',
    'address', 'city', 'state', 'country', 'zip_code', 'notes',
]

TEMPLATE_SAMPLE_ROWS = [
    ['Rahul Verma', 'rahul@example.com', '9876543210', 'Infosys', 'Engineer', 'website', 'high',
     '12 MG Road', 'Bengaluru', 'Karnataka', 'India', '560001', 'Wants a personal loan'],
    ['Sneha Iyer', 'sneha@example.com', '+91 91234 56789', 'TCS', 'Manager', 'referral', 'medium',
     '4 Anna Salai', 'Chennai', 'Tamil Nadu', 'India', '600002', 'Call after 6pm'],
]

# CSV column → Lead field
FIELD_MAP = {
    'name': 'name',
    'email': 'email',
    'company': 'company_name',
    'designation': 'designation',
    'source': 'source',
    'priority': 'priority',
    'address': 'address',
    'city': 'city',
    'state': 'state',
    'country': 'country',
    'zip_code': 'zip_code',
    'notes': 'notes',
}

ASSIGN_UNASSIGNED = 'unassigned'
ASSIGN_SINGLE = 'single'
ASSIGN_AUTO = 'auto'


class LeadImportError(Exception):
    """The whole import cannot proceed (unreadable file, nobody to assign to...)"""


def template_csv():
    """Downloadable CSV template: header row + two sample rows"""
    lines = [','.join(TEMPLATE_HEADERS)]
    lines.extend(','.join(row) for row in TEMPLATE_SAMPLE_ROWS)
    return '\n'.join(lines) + '\n'


# PARSING
def parse_csv_text(text):
    """
    Naive CSV parse

    Returns:
        list of (row_number, dict) where row_number 2 is the first data line
    """
    text = text.lstrip('\ufeff')
    lines = [line for line in text.split('\n') if line.strip()]
    if len(lines) < 2:
        return []

    headers = [h.strip().lower() for h in lines[0].split(',')]
    rows = []

    for index, line in enumerate(lines[1:], start=2):
        values = [v.strip() for v in line.split(',')]
        row = {}
        for position, header in enumerate(headers):
            row[header] = values[position] if position < len(values) else ''
        rows.append((index, row))

    return rows


def _cell_text(value):
    if value is None:
        return ''
    # Excel stores phone numbers as floats: 9876543210.0
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_xlsx(file_obj):
    """First sheet of a workbook, same row shape as parse_csv_text"""
    wb = openpyxl.load_workbook(file_obj, read_only=True, data_only=True)
    ws = wb.active

    rows = []
    headers = None
    index = 1

    for values in ws.iter_rows(values_only=True):
        cells = [_cell_text(v) for v in values]
        if not any(cells):
            continue

        if headers is None:
            headers = [c.lower() for c in cells]
            continue

        index += 1
        row = {}
        for position, header in enumerate(headers):
            if header:
                row[header] = cells[position] if position < len(cells) else ''
        rows.append((index, row))

    wb.close()
    return rows


def read_upload(uploaded_file):
    """
    Dispatch on file extension

    Raises:
        LeadImportError: unsupported type or undecodable content
    """
    file_name = uploaded_file.name.lower()

    if file_name.endswith('.xlsx'):
        try:
            return parse_xlsx(uploaded_file)
        except Exception as e:
            raise LeadImportError(f'Could not read Excel file: {e}')

    if file_name.endswith('.csv'):
        raw = uploaded_file.read()
        try:
            text = raw.decode('utf-8-sig')
        except UnicodeDecodeError:
            raise LeadImportError('CSV file must be UTF-8 encoded')
        return parse_csv_text(text.replace('\r\n', '\n'))

    raise LeadImportError('Only .csv and .xlsx files are supported')


# VALIDATION
def validate_row(row, row_number):
    """List of "Row N: ..." messages; empty when the row is usable"""
    errors = []

    if not (row.get('name') or '').strip():
        errors.append(f'Row {row_number}: Name is required')

    if not (row.get('phone') or '').strip():
        errors.append(f'Row {row_number}: Phone is required')

    email = (row.get('email') or '').strip()
    if email and '@' not in email:
        errors.append(f'Row {row_number}: Invalid email format')

    return errors


def normalize_phone(phone):
    return phone_digits(phone)


def dedupe_rows(rows):
    """
    Keep the first row for each normalised phone

    Returns:
        tuple (unique_rows, duplicate_rows)
    """
    seen = set()
    unique, duplicates = [], []

    for row_number, row in rows:
        key = normalize_phone(row.get('phone')) or (row.get('phone') or '').strip()
        if key in seen:
            duplicates.append((row_number, row))
            continue
        seen.add(key)
        unique.append((row_number, row))

    return unique, duplicates


def _chunks(items, size):
    for start in range(0, len(items), size):
        yield items[start:start + size]


# IMPORTER
class LeadImporter:
    """
    Usage:
        importer = LeadImporter(imported_by=request.user, assign_mode='auto')
        results = importer.run(read_upload(request.FILES['file']))
    """

    def __init__(self, imported_by=None, assign_mode=ASSIGN_UNASSIGNED, assignee=None,
                 default_source='other', batch_size=None):
        self.imported_by = imported_by
        self.assign_mode = assign_mode
        self.assignee = assignee
        self.default_source = default_source or 'other'
        self.batch_size = batch_size or getattr(settings, 'LEAD_IMPORT_BATCH_SIZE', 50)

        self.results = {
            'total': 0,
            'created': 0,
            'updated': 0,
            'skipped': 0,
            'duplicates': 0,
            'failed': 0,
            'errors': [],
        }

    # ASSIGNMENT
    def _distribution_list(self):
        if self.assign_mode == ASSIGN_SINGLE:
            if self.assignee is None:
                raise LeadImportError('Select a telecaller to assign the leads to')
            return [self.assignee]

        if self.assign_mode == ASSIGN_AUTO:
            from apps.attendance.services import checked_in_telecallers

            users = list(checked_in_telecallers())
            if not users:
                raise LeadImportError('No telecallers are checked in today. Cannot auto-distribute.')
            random.shuffle(users)
            return users

        return []

    # ROW → LEAD FIELDS
    def _field_values(self, row):
        values = {}
        for column, field in FIELD_MAP.items():
            value = (row.get(column) or '').strip()
            if value:
                values[field] = value

        values['phone'] = normalize_phone(row.get('phone')) or row['phone'].strip()
        values.setdefault('source', self.default_source)

        priority = normalize_status(values.get('priority'))
        values['priority'] = priority if priority in dict(Lead.PRIORITY_CHOICES) else 'medium'

        if not values.get('email'):
            values['email'] = None
        return values

    def run(self, rows):
        results = self.results
        results['total'] = len(rows)

        distribution = self._distribution_list()

        valid = []
        for row_number, row in rows:
            errors = validate_row(row, row_number)
            if errors:
                results['errors'].extend(errors)
                results['failed'] += 1
                continue
            valid.append((row_number, row))

        unique, duplicates = dedupe_rows(valid)
        results['duplicates'] = len(duplicates)
        for row_number, row in duplicates:
            results['errors'].append(f'Row {row_number}: Duplicate phone in file ({row.get("phone")})')

        existing = {}
        for pk, phone, status in Lead.objects.values_list('pk', 'phone', 'status'):
            existing.setdefault(normalize_phone(phone), (pk, status))

        now = timezone.now()
        pending = []
        for row_number, row in unique:
            values = self._field_values(row)
            match = existing.get(values['phone'])

            if match and normalize_status(match[1]) in Lead.RESTRICTED_IMPORT_STATUSES:
                results['skipped'] += 1
                results['errors'].append(
                    f'Row {row_number}: Skipped, lead is already {dict(Lead.STATUS_CHOICES).get(normalize_status(match[1]), match[1])}'
                )
                continue

            if distribution:
                assignee = distribution[len(pending) % len(distribution)]
                values.update(assigned_to=assignee, assigned_by=self.imported_by, assigned_at=now)

            pending.append((row_number, values, match[0] if match else None))

        for batch in _chunks(pending, self.batch_size):
            self._write_batch(batch, now)

        if results['created'] or results['updated']:
            broadcast_change('leads', 'created')
            self._notify_assignees(pending)

        logger.info(
            "Lead import by %s: %s created, %s updated, %s skipped, %s duplicates, %s failed",
            self.imported_by, results['created'], results['updated'],
            results['skipped'], results['duplicates'], results['failed'],
        )
        return results

    def _write_batch(self, batch, now):
        to_create = []
        to_update = []
        update_fields = {'updated_at'}

        existing = Lead.objects.in_bulk([pk for _, _, pk in batch if pk is not None])

        for row_number, values, existing_pk in batch:
            if existing_pk is None:
                to_create.append(Lead(status=Lead.STATUS_NEW, **values))
                continue

            lead = existing.get(existing_pk)
            if lead is None:
                # Deleted since the lookup
                to_create.append(Lead(status=Lead.STATUS_NEW, **values))
                continue

            for field, value in values.items():
                setattr(lead, field, value)
            lead.updated_at = now
            update_fields.update(values.keys())
            to_update.append(lead)

        with transaction.atomic():
            if to_create:
                # PostgreSQL and SQLite return the new primary keys
                created = Lead.objects.bulk_create(to_create)
                Activity.objects.bulk_create([
                    Activity(lead_id=lead.pk, user=self.imported_by, activity_type='imported', description='Lead imported from file')
                    for lead in created
                ])

            if to_update:
                Lead.objects.bulk_update(to_update, sorted(update_fields))
                Activity.objects.bulk_create([
                    Activity(lead_id=lead.pk, user=self.imported_by, activity_type='imported', description='Lead updated from import')
                    for lead in to_update
                ])

        self.results['created'] += len(to_create)
        self.results['updated'] += len(to_update)


    def _notify_assignees(self, pending):
        from apps.core.models import Notification

        counts = {}
        for row_number, values, existing_pk in pending:
            assignee = values.get('assigned_to')
            if assignee is not None:
                counts[assignee] = counts.get(assignee, 0) + 1

        for assignee, count in counts.items():
            if assignee == self.imported_by:
                continue
            Notification.notify(assignee, 'New leads assigned', f'{count} lead(s) were assigned to you from an import.', link=reverse('leads:lead_list'))
