from datetime import datetime, timezone
from flask import Flask
from procureflow import get_db
from procureflow.models.service_request import ServiceRequest
from procureflow.models.receiving_report import ReceivingReport
from procureflow.services.numbering import next_yearly_number, next_daily_number

# A year no other test writes into, so counts start from zero
YEAR = datetime(1999, 6, 15, tzinfo=timezone.utc)


def test_yearly_number_counts_existing_in_year(app_context: Flask):
    session = get_db()
    first = next_yearly_number(session, ServiceRequest.sr_number, 'SR', now=YEAR)
    assert first == 'SR-1999-0001'
    session.add(ServiceRequest(sr_number=first, requested_by='Numbering', department='IT',
                               service_category='Other', work_description='n/a', approvals=[]))
    session.commit()
    assert next_yearly_number(session, ServiceRequest.sr_number, 'SR', now=YEAR) == 'SR-1999-0002'
    # A different year restarts the sequence
    assert next_yearly_number(session, ServiceRequest.sr_number, 'SR',
                              now=datetime(1998, 1, 1, tzinfo=timezone.utc)) == 'SR-1998-0001'


def test_daily_number_format(app_context: Flask):
    number = next_daily_number(get_db(), ReceivingReport.rr_number, 'RR', now=YEAR)
    assert number == 'RR-19990615-0001'
