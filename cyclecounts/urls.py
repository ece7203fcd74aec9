from django.urls import path

from .views import (
    CycleCountDetailView,
    CycleCountItemView,
    CycleCountListCreateView,
    CycleCountPreloadView,
    CycleCountTransitionView,
)

urlpatterns = [
    path("", CycleCountListCreateView.as_view(), name="cyclecount-list"),
    path("<int:cycle_count_id>/", CycleCountDetailView.as_view(), name="cyclecount-detail"),
    path("<int:cycle_count_id>/preload/", CycleCountPreloadView.as_view(), name="cyclecount-preload"),
    path("<int:cycle_count_id>/items/<int:item_id>/", CycleCountItemView.as_view(), name="cyclecount-item"),
    path(
        "<int:cycle_count_id>/start/",
        CycleCountTransitionView.as_view(transition="start"),
        name="cyclecount-start",
    ),
    path(
        "<int:cycle_count_id>/complete/",
        CycleCountTransitionView.as_view(transition="complete"),
        name="cyclecount-complete",
    ),
    path(
        "<int:cycle_count_id>/cancel/",
        CycleCountTransitionView.as_view(transition="cancel"),
        name="cyclecount-cancel",
    ),
    path(
        "<int:cycle_count_id>/apply-adjustments/",
        CycleCountTransitionView.as_view(transition="apply"),
        name="cyclecount-apply",
    ),
]
