from django.urls import path

from .views import (
    DivisionDescendantsView,
    DivisionHierarchyView,
    DivisionReparentView,
    PositionDescendantsView,
    PositionHierarchyView,
    PositionReparentView,
)

urlpatterns = [
    path('divisions/hierarchy', DivisionHierarchyView.as_view(), name='division-hierarchy'),
    path('divisions/<int:pk>/hierarchy', DivisionHierarchyView.as_view(), name='division-subtree'),
    path('divisions/<int:pk>/descendants', DivisionDescendantsView.as_view(), name='division-descendants'),
    path('divisions/<int:pk>/parent', DivisionReparentView.as_view(), name='division-reparent'),
    path('positions/hierarchy', PositionHierarchyView.as_view(), name='position-hierarchy'),
    path('positions/<int:pk>/hierarchy', PositionHierarchyView.as_view(), name='position-subtree'),
    path('positions/<int:pk>/descendants', PositionDescendantsView.as_view(), name='position-descendants'),
    path('positions/<int:pk>/parent', PositionReparentView.as_view(), name='position-reparent'),
]
