from __future__ import annotations

from django.shortcuts import get_object_or_404

from rest_framework import status, views
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from .models import Division, Position
from .serializers import DivisionSerializer, PositionSerializer, ReparentSerializer
from .services.structure import descendants_for, hierarchy_for, reparent


class HierarchyView(views.APIView):
    """GET the whole forest, or the subtree below `pk` when given."""
    permission_classes = [IsAuthenticated]
    model = None

    def get(self, request, pk=None):
        data = hierarchy_for(self.model.objects.all(), root_id=pk)
        return Response(data, status=status.HTTP_200_OK)


class DescendantsView(views.APIView):
    permission_classes = [IsAuthenticated]
    model = None

    def get(self, request, pk):
        data = descendants_for(self.model.objects.all(), pk)
        return Response(data, status=status.HTTP_200_OK)


class ReparentView(views.APIView):
    """Move a node under a new parent (or to the root) and relevel its subtree."""
    permission_classes = [IsAuthenticated]
    model = None
    serializer_class = None

    def post(self, request, pk):
        node = get_object_or_404(self.model, pk=pk)
        ser = ReparentSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        parent_id = ser.validated_data["parent"]
        parent = get_object_or_404(self.model, pk=parent_id) if parent_id is not None else None
        node = reparent(node, parent)
        return Response(self.serializer_class(node).data, status=status.HTTP_200_OK)


class DivisionHierarchyView(HierarchyView):
    model = Division


class DivisionDescendantsView(DescendantsView):
    model = Division


class DivisionReparentView(ReparentView):
    model = Division
    serializer_class = DivisionSerializer


class PositionHierarchyView(HierarchyView):
    model = Position


class PositionDescendantsView(DescendantsView):
    model = Position


class PositionReparentView(ReparentView):
    model = Position
    serializer_class = PositionSerializer
