"""
Catalog API Views.

Implements:
- GET /products/ - Find products by name, category, gender and size
- POST /products/ - Create a product (administrators)
- GET /products/{id}/ - Retrieve a product
- PUT/PATCH/DELETE /products/{id}/ - Manage a product (administrators)
"""
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.permissions import IsAdministratorOrReadOnly
from . import services
from .serializers import ProductSerializer, ProductWriteSerializer


class ProductListCreateView(APIView):
    """
    GET: List products

    Query Parameters:
        - name: Exact product name
        - category: DEPORTIVO, CASUAL, RUNNING, FUTBOL, FORMAL
        - gender: M, F, U
        - size: 35-43 (or T35-T43)

    POST: Create a new product
    """
    permission_classes = [IsAdministratorOrReadOnly]

    def get(self, request):
        params = request.query_params
        products = services.find_products(
            name=params.get('name', '').strip() or None,
            category=params.get('category'),
            gender=params.get('gender'),
            size=params.get('size'),
        )
        return Response(ProductSerializer(products, many=True).data)

    def post(self, request):
        serializer = ProductWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = services.create_product(**serializer.validated_data)
        return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)


class ProductDetailView(APIView):
    """
    GET: Retrieve a product
    PUT/PATCH: Update a product
    DELETE: Delete a product
    """
    permission_classes = [IsAdministratorOrReadOnly]

    def get(self, request, pk):
        return Response(ProductSerializer(services.get_product(pk)).data)

    def put(self, request, pk):
        serializer = ProductWriteSerializer(data=request.data, partial=request.method == 'PATCH')
        serializer.is_valid(raise_exception=True)
        product = services.update_product(pk, **serializer.validated_data)
        return Response(ProductSerializer(product).data)

    patch = put

    def delete(self, request, pk):
        services.delete_product(pk)
        return Response(status=status.HTTP_204_NO_CONTENT)
