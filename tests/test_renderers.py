from notif_dashboard import renderers
from notif_dashboard.models import Label, NotifCard, RenderedComment, ViewModel


def _view_model(**overrides):
    values = dict(
        cards=[
            NotifCard(
                body="<p>Database is down</p>",
                title="Outage",
                url="https://github.com/grafana/support-escalations/issues/1",
                notification_id="42",
                labels=[Label(name="sev1", color="b60205")],
                comments=[
                    RenderedComment(
                        title="alice",
                        body="<p>Investigating</p>",
                        url="https://github.com/c/1",
                        age="1h0m0s",
                    )
                ],
                closed=False,
            )
        ],
        refreshed_time="09:15",
        time="2024-03-01T09:15:00Z",
        count=3,
    )
    values.update(overrides)
    return ViewModel(**values)


def test_build_dashboard_html_renders_cards_and_comments():
    html = renderers.build_dashboard_html(_view_model())

    assert "<p>Database is down</p>" in html
    assert 'href="https://github.com/grafana/support-escalations/issues/1"' in html
    assert "sev1" in html
    assert "background: #b60205" in html
    assert "<p>Investigating</p>" in html
    assert "1h0m0s ago" in html
    assert "refreshed at 09:15" in html
    assert "<title>(3) Notifications</title>" in html


def test_build_dashboard_html_marks_closed_cards():
    vm = _view_model()
    vm.cards[0].closed = True

    html = renderers.build_dashboard_html(vm)

    assert 'class="card closed"' in html
    assert "(closed)" in html


def test_build_dashboard_html_without_cards():
    html = renderers.build_dashboard_html(_view_model(cards=[], count=0))

    assert "Nothing to see here." in html
    assert "could not be loaded" not in html


def test_build_dashboard_html_links_mark_read_with_encoded_time():
    html = renderers.build_dashboard_html(_view_model())

    assert "/read/?time=2024-03-01T09%3A15%3A00Z" in html


def test_build_dashboard_html_lists_failures():
    html = renderers.build_dashboard_html(
        _view_model(failures=["Notification 7: Malformed repository name: 'x'"])
    )

    assert "could not be loaded" in html
    assert "Malformed repository name" in html
